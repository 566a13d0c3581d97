"""Ledger error taxonomy.

Every failed operation raises one of these. Callers inspect the type
(or `kind`) to decide between retry and abort; the ledger itself never
retries.
"""

from __future__ import annotations

import enum
from typing import Optional


class ScheduleRule(str, enum.Enum):
    """Which construction-time rule a rejected schedule broke."""
    ZERO_TOTAL_AMOUNT = "zero_total_amount"
    ZERO_DURATION = "zero_duration"
    SLICE_OUT_OF_RANGE = "slice_out_of_range"
    ARRAY_LENGTH_MISMATCH = "array_length_mismatch"
    ZERO_ASSET_ADDRESS = "zero_asset_address"
    ZERO_BENEFICIARY_ADDRESS = "zero_beneficiary_address"
    SHARE_OUT_OF_RANGE = "share_out_of_range"
    SHARE_SUM_MISMATCH = "share_sum_mismatch"
    DUPLICATE_BENEFICIARY = "duplicate_beneficiary"
    INVALID_PARAMETER = "invalid_parameter"


class VestingError(Exception):
    """Base class for all ledger errors."""

    kind = "vesting_error"


class InvalidSchedule(VestingError):
    """Raised when schedule parameters fail validation at construction."""

    kind = "invalid_schedule"

    def __init__(self, rule: ScheduleRule, message: str) -> None:
        super().__init__(message)
        self.rule = rule


class NotRevocable(VestingError):
    """Raised when revoking a non-revocable or already-revoked schedule."""

    kind = "not_revocable"


class Unauthorized(VestingError):
    """Raised when a non-administrator calls an administrator operation."""

    kind = "unauthorized"

    def __init__(self, caller: Optional[str], operation: str) -> None:
        super().__init__(f"Caller {caller!r} is not allowed to {operation}")
        self.caller = caller
        self.operation = operation


class UnknownBeneficiary(VestingError):
    kind = "unknown_beneficiary"

    def __init__(self, address: str) -> None:
        super().__init__(f"Unknown beneficiary: {address}")
        self.address = address


class TransferFailed(VestingError):
    """The asset transfer collaborator reported failure. Passed through as-is."""

    kind = "transfer_failed"

    def __init__(self, reason: str, to: Optional[str] = None, amount: int = 0) -> None:
        super().__init__(f"Transfer of {amount} to {to} failed: {reason}")
        self.reason = reason
        self.to = to
        self.amount = amount
