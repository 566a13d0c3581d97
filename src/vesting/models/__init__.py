"""Vesting data models."""

from vesting.models.schedule import (
    BPS_DENOMINATOR,
    LEDGER_TRANSITIONS,
    MAX_SHARE_BPS,
    MAX_SLICE_BPS,
    MIN_SLICE_BPS,
    U64_MAX,
    ZERO_ADDRESS,
    Beneficiary,
    LedgerState,
    Schedule,
    address_key,
    is_zero_address,
)

__all__ = [
    "BPS_DENOMINATOR",
    "LEDGER_TRANSITIONS",
    "MAX_SHARE_BPS",
    "MAX_SLICE_BPS",
    "MIN_SLICE_BPS",
    "U64_MAX",
    "ZERO_ADDRESS",
    "Beneficiary",
    "LedgerState",
    "Schedule",
    "address_key",
    "is_zero_address",
]
