"""Schedule models — the immutable schedule, beneficiaries, and ledger state.

All amounts are integer asset units and all fractions are integer basis
points. No floats in accounting.

Invariants enforced by these models and the validator:
- Schedule fields never change after construction
- Beneficiary set and registration order are fixed
- released never exceeds a beneficiary's allocation
- Ledger state is a one-way machine (ACTIVE → REVOKED)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional


BPS_DENOMINATOR = 10_000
MIN_SLICE_BPS = 100
MAX_SLICE_BPS = 10_000
MAX_SHARE_BPS = 10_000
U64_MAX = 2**64 - 1

ZERO_ADDRESS = "0x" + "0" * 40


def is_zero_address(value: Optional[str]) -> bool:
    """True for None, blank strings, and any all-zero hex address."""
    if value is None:
        return True
    text = str(value).strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    return set(text) <= {"0"}


def address_key(value: str) -> str:
    """Comparison key for an address. Hex addresses are case-insensitive."""
    text = str(value).strip()
    if text[:2].lower() == "0x":
        return text.lower()
    return text


class LedgerState(str, enum.Enum):
    """Lifecycle state of a vesting ledger.

    State machine:
        ACTIVE → REVOKED
    """
    ACTIVE = "active"
    REVOKED = "revoked"


LEDGER_TRANSITIONS: Dict[LedgerState, frozenset] = {
    LedgerState.ACTIVE: frozenset({LedgerState.REVOKED}),
    LedgerState.REVOKED: frozenset(),
}


@dataclass(frozen=True)
class Schedule:
    """Immutable schedule parameters.

    Accrual starts at start + cliff. Each elapsed period_duration after
    that unlocks slice_bps of every beneficiary's allocation, capped at
    the full allocation.
    """
    revocable: bool
    asset: str
    total_amount: int
    start: int
    cliff: int
    period_duration: int
    slice_bps: int
    unlock_at_cliff: bool = False

    @property
    def cliff_end(self) -> int:
        return self.start + self.cliff

    def to_dict(self) -> dict:
        return {
            "revocable": self.revocable,
            "asset": self.asset,
            "total_amount": self.total_amount,
            "start": self.start,
            "cliff": self.cliff,
            "period_duration": self.period_duration,
            "slice_bps": self.slice_bps,
            "unlock_at_cliff": self.unlock_at_cliff,
        }

    @staticmethod
    def from_dict(data: dict) -> Schedule:
        return Schedule(
            revocable=bool(data["revocable"]),
            asset=data["asset"],
            total_amount=int(data["total_amount"]),
            start=int(data["start"]),
            cliff=int(data["cliff"]),
            period_duration=int(data["period_duration"]),
            slice_bps=int(data["slice_bps"]),
            unlock_at_cliff=bool(data.get("unlock_at_cliff", False)),
        )


@dataclass
class Beneficiary:
    """A participant in the schedule.

    Mutable — only `released` changes.
    """
    address: str
    share_bps: int
    released: int = 0

    def record_release(self, amount: int, allocation: int) -> None:
        """Add a payout to the cumulative counter, validating bounds."""
        if amount < 0:
            raise ValueError(f"Release amount must be non-negative, got {amount}")
        if self.released + amount > allocation:
            raise ValueError(
                f"Release of {amount} would exceed allocation for {self.address}: "
                f"released {self.released}, allocation {allocation}"
            )
        self.released += amount

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "share_bps": self.share_bps,
            "released": self.released,
        }

    @staticmethod
    def from_dict(data: dict) -> Beneficiary:
        return Beneficiary(
            address=data["address"],
            share_bps=int(data["share_bps"]),
            released=int(data.get("released", 0)),
        )
