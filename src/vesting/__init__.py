"""Vesting ledger — cliff-then-periodic-slice token vesting accounting."""

from vesting.errors import (
    InvalidSchedule,
    NotRevocable,
    ScheduleRule,
    TransferFailed,
    Unauthorized,
    UnknownBeneficiary,
    VestingError,
)
from vesting.ledger import LedgerEvent, VestingLedger
from vesting.models.schedule import Beneficiary, LedgerState, Schedule
from vesting.transfer.asset_transfer import (
    AssetTransfer,
    InMemoryAssetBook,
    TransferResult,
)

__all__ = [
    "AssetTransfer",
    "Beneficiary",
    "InMemoryAssetBook",
    "InvalidSchedule",
    "LedgerEvent",
    "LedgerState",
    "NotRevocable",
    "Schedule",
    "ScheduleRule",
    "TransferFailed",
    "TransferResult",
    "Unauthorized",
    "UnknownBeneficiary",
    "VestingError",
    "VestingLedger",
]
