"""Vesting ledger — schedule state, payouts, revocation and withdrawal.

The ledger owns the immutable schedule, the fixed beneficiary set, each
beneficiary's cumulative released counter, and the revocation flag.
Funds live in an account (the holding account) inside an external asset
book; the ledger moves them only through the AssetTransfer collaborator.

State machine:
    ACTIVE → REVOKED        (administrator, revocable schedules only)

release, release_all and withdraw are valid in both states.

Serialization: every mutating operation holds the ledger lock for its
whole duration. Counter updates happen before the collaborator call and
are rolled back if the transfer fails, so a callback that re-enters the
ledger mid-transfer sees the updated counter and finds nothing left to
release. While a payout is in flight its amount is excluded from the
balance withdraw may take, and a nested revoke is refused.

Partial-failure policy:
- release_all continues past a failed beneficiary; the failure is
  logged and reported as a zero payout.
- revoke stops at the first failed implicit release and leaves the
  ledger ACTIVE. Payouts already made to earlier beneficiaries stand,
  so this is the one mutation error that does not leave prior state
  unchanged; a transfer cannot be taken back through the collaborator.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from vesting.engine import accrual
from vesting.engine.validator import (
    DurationLike,
    ScheduleParams,
    ScheduleValidator,
    TimeLike,
    as_timestamp,
)
from vesting.errors import (
    NotRevocable,
    TransferFailed,
    Unauthorized,
    UnknownBeneficiary,
)
from vesting.models.schedule import (
    LEDGER_TRANSITIONS,
    Beneficiary,
    LedgerState,
    Schedule,
)
from vesting.persistence.event_log import EventKind
from vesting.policy.resolver import VestingPolicy
from vesting.transfer.asset_transfer import AssetTransfer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    """An observable ledger side effect, for external audit and indexing."""
    kind: EventKind
    timestamp: int
    payload: Dict[str, Any] = field(default_factory=dict)


EventListener = Callable[[LedgerEvent], None]
Clock = Callable[[], int]


def _utc_now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


class VestingLedger:
    """A single vesting schedule and its payout accounting.

    Usage:
        book = InMemoryAssetBook()
        ledger = VestingLedger.create(
            True, "0xToken", 1000, start, 3600, 3600, 1000,
            ["alice", "bob"], [5000, 5000],
            administrator="admin", transfer=book, holding_account="vault",
        )
        book.mint("vault", 1000)
        paid = ledger.release("alice", now=start + 7200)
        ledger.revoke("admin", now=start + 7200)
        refund = ledger.withdraw("admin")
    """

    def __init__(
        self,
        schedule: Schedule,
        beneficiaries: Sequence[Beneficiary],
        *,
        administrator: str,
        transfer: AssetTransfer,
        holding_account: str,
        state: LedgerState = LedgerState.ACTIVE,
        revoked_at: Optional[int] = None,
        listener: Optional[EventListener] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if not administrator:
            raise ValueError("Administrator must be a non-empty account ID")
        if not holding_account:
            raise ValueError("Holding account must be a non-empty account ID")
        if (state == LedgerState.REVOKED) != (revoked_at is not None):
            raise ValueError("revoked_at must be set exactly when state is REVOKED")

        self._schedule = schedule
        self._beneficiaries: List[Beneficiary] = list(beneficiaries)
        self._index: Dict[str, Beneficiary] = {b.address: b for b in self._beneficiaries}
        if len(self._index) != len(self._beneficiaries):
            raise ValueError("Beneficiary addresses must be unique")
        for b in self._beneficiaries:
            if b.released > accrual.allocation(schedule, b.share_bps):
                raise ValueError(f"Released exceeds allocation for {b.address}")

        self._administrator = administrator
        self._transfer = transfer
        self._holding_account = holding_account
        self._state = state
        self._revoked_at = revoked_at
        self._listener = listener
        self._clock = clock or _utc_now
        self._lock = threading.RLock()
        self._in_flight = 0
        self._revoking = False
        self._events: List[LedgerEvent] = []

    @classmethod
    def create(
        cls,
        revocable: bool,
        asset: Optional[str],
        total_amount: int,
        start: TimeLike,
        cliff: DurationLike,
        period_duration: DurationLike,
        slice_bps: int,
        addresses: Sequence[Optional[str]],
        shares: Sequence[int],
        *,
        administrator: str,
        transfer: AssetTransfer,
        holding_account: Optional[str] = None,
        policy: Optional[VestingPolicy] = None,
        unlock_at_cliff: Optional[bool] = None,
        listener: Optional[EventListener] = None,
        clock: Optional[Clock] = None,
    ) -> VestingLedger:
        """Validate parameters and build a ledger in one atomic step.

        Raises InvalidSchedule on the first failing rule; no ledger
        object exists and no event is emitted in that case.
        """
        params = ScheduleParams(
            revocable=revocable,
            asset=asset,
            total_amount=total_amount,
            start=start,
            cliff=cliff,
            period_duration=period_duration,
            slice_bps=slice_bps,
            addresses=tuple(addresses),
            shares=tuple(shares),
        )
        return cls.from_params(
            params,
            administrator=administrator,
            transfer=transfer,
            holding_account=holding_account,
            policy=policy,
            unlock_at_cliff=unlock_at_cliff,
            listener=listener,
            clock=clock,
        )

    @classmethod
    def from_params(
        cls,
        params: ScheduleParams,
        *,
        administrator: str,
        transfer: AssetTransfer,
        holding_account: Optional[str] = None,
        policy: Optional[VestingPolicy] = None,
        unlock_at_cliff: Optional[bool] = None,
        listener: Optional[EventListener] = None,
        clock: Optional[Clock] = None,
    ) -> VestingLedger:
        schedule, beneficiaries = ScheduleValidator(policy).validate(
            params, unlock_at_cliff=unlock_at_cliff,
        )
        ledger = cls(
            schedule,
            beneficiaries,
            administrator=administrator,
            transfer=transfer,
            holding_account=holding_account or f"vesting_{uuid4().hex[:12]}",
            listener=listener,
            clock=clock,
        )
        ledger._emit(EventKind.SCHEDULE_CREATED, ledger._clock(), {
            "schedule": schedule.to_dict(),
            "beneficiaries": ledger.beneficiaries(),
            "administrator": administrator,
            "holding_account": ledger.holding_account,
        })
        logger.info(
            "Vesting schedule created: %d beneficiaries, total %d, holding account %s",
            len(beneficiaries), schedule.total_amount, ledger.holding_account,
        )
        return ledger

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def total_amount(self) -> int:
        return self._schedule.total_amount

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def revoked(self) -> bool:
        return self._state == LedgerState.REVOKED

    @property
    def revoked_at(self) -> Optional[int]:
        return self._revoked_at

    @property
    def administrator(self) -> str:
        return self._administrator

    @property
    def holding_account(self) -> str:
        return self._holding_account

    @property
    def events(self) -> List[LedgerEvent]:
        return list(self._events)

    def schedule_params(self) -> Schedule:
        return self._schedule

    def beneficiaries(self) -> List[Tuple[str, int]]:
        """(address, share_bps) pairs in registration order."""
        return [(b.address, b.share_bps) for b in self._beneficiaries]

    def addresses(self) -> List[str]:
        return [b.address for b in self._beneficiaries]

    def share_bps(self, address: str) -> int:
        return self._get(address).share_bps

    percentage = share_bps

    def allocation(self, address: str) -> int:
        return accrual.allocation(self._schedule, self._get(address).share_bps)

    def released_amount(self, address: str) -> int:
        return self._get(address).released

    def total_released(self) -> int:
        return sum(b.released for b in self._beneficiaries)

    def vested_amount(self, address: str, now: Optional[TimeLike] = None) -> int:
        """Units of `address`'s allocation unlocked at `now` (paid or not)."""
        b = self._get(address)
        return accrual.vested_amount(
            self._schedule, b.share_bps, self._now(now), self._revoked_at,
        )

    def releasable_amount(self, address: str, now: Optional[TimeLike] = None) -> int:
        b = self._get(address)
        return accrual.releasable_amount(
            self._schedule, b.share_bps, b.released, self._now(now), self._revoked_at,
        )

    def held_balance(self) -> int:
        return self._transfer.balance_of(self._holding_account)

    def status(self, now: Optional[TimeLike] = None) -> Dict[str, Any]:
        """Summary of the ledger at `now`, JSON-serialisable."""
        at = self._now(now)
        return {
            "state": self._state.value,
            "revoked_at": self._revoked_at,
            "now": at,
            "schedule": self._schedule.to_dict(),
            "administrator": self._administrator,
            "holding_account": self._holding_account,
            "held_balance": self.held_balance(),
            "vested_bps": accrual.vested_bps(self._schedule, at, self._revoked_at),
            "next_unlock": accrual.next_unlock(self._schedule, at, self._revoked_at),
            "vesting_end": accrual.vesting_end(self._schedule),
            "beneficiaries": [
                {
                    "address": b.address,
                    "share_bps": b.share_bps,
                    "allocation": accrual.allocation(self._schedule, b.share_bps),
                    "vested": accrual.vested_amount(
                        self._schedule, b.share_bps, at, self._revoked_at,
                    ),
                    "released": b.released,
                    "releasable": accrual.releasable_amount(
                        self._schedule, b.share_bps, b.released, at, self._revoked_at,
                    ),
                }
                for b in self._beneficiaries
            ],
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def release(self, address: str, now: Optional[TimeLike] = None) -> int:
        """Pay `address` everything vested and not yet released.

        Returns the amount paid (0 when nothing is due, no transfer made).
        Raises UnknownBeneficiary or TransferFailed.
        """
        with self._lock:
            return self._release(self._get(address), self._now(now))

    def release_all(self, now: Optional[TimeLike] = None) -> List[Tuple[str, int]]:
        """Release for every beneficiary in registration order.

        A failed transfer does not stop the batch; that beneficiary is
        reported with 0 and can be retried later.
        """
        at = self._now(now)
        results: List[Tuple[str, int]] = []
        with self._lock:
            for b in self._beneficiaries:
                try:
                    amount = self._release(b, at)
                except TransferFailed as exc:
                    logger.warning(
                        "release_all: skipping %s after failed transfer: %s",
                        b.address, exc.reason,
                    )
                    amount = 0
                results.append((b.address, amount))
        return results

    def revoke(self, caller: str, now: Optional[TimeLike] = None) -> None:
        """Pay out everything vested at `now`, then freeze accrual permanently."""
        with self._lock:
            if caller != self._administrator:
                raise Unauthorized(caller, "revoke")
            if not self._schedule.revocable:
                raise NotRevocable("Vesting: schedule is not revocable.")
            if self.revoked:
                raise NotRevocable("Vesting: schedule is already revoked.")
            if self._revoking:
                raise NotRevocable("Vesting: schedule is being revoked.")

            at = self._now(now)
            self._revoking = True
            try:
                for b in self._beneficiaries:
                    self._release(b, at)
            finally:
                self._revoking = False

            self._transition_to(LedgerState.REVOKED)
            self._revoked_at = at
            self._emit(EventKind.REVOKED, at, {"revoked_at": at})
            logger.info("Vesting schedule revoked at %d by %s", at, caller)

    def withdraw(self, caller: str, now: Optional[TimeLike] = None) -> int:
        """Transfer the held balance to the administrator, in either state.

        An amount currently in transit to a beneficiary is left behind.
        Returns the amount moved (0 when nothing is held, no transfer made).
        """
        with self._lock:
            if caller != self._administrator:
                raise Unauthorized(caller, "withdraw")

            at = self._now(now)
            held = self.held_balance()
            amount = max(0, held - self._in_flight)

            if amount == 0:
                logger.info("withdraw: nothing to withdraw (held %d)", held)
                return 0

            result = self._transfer.transfer(self._holding_account, self._administrator, amount)
            if not result.ok:
                logger.warning("withdraw of %d failed: %s", amount, result.reason)
                raise TransferFailed(result.reason, self._administrator, amount)

            self._emit(EventKind.WITHDRAWN, at, {
                "address": self._administrator,
                "amount": amount,
            })
            logger.info("Withdrew %d to administrator %s", amount, self._administrator)
            return amount

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """JSON-serialisable ledger state (the asset book is not included)."""
        with self._lock:
            return {
                "schedule": self._schedule.to_dict(),
                "beneficiaries": [b.to_dict() for b in self._beneficiaries],
                "state": self._state.value,
                "revoked_at": self._revoked_at,
                "administrator": self._administrator,
                "holding_account": self._holding_account,
            }

    @classmethod
    def from_snapshot(
        cls,
        data: Dict[str, Any],
        transfer: AssetTransfer,
        listener: Optional[EventListener] = None,
        clock: Optional[Clock] = None,
    ) -> VestingLedger:
        revoked_at = data.get("revoked_at")
        return cls(
            Schedule.from_dict(data["schedule"]),
            [Beneficiary.from_dict(b) for b in data["beneficiaries"]],
            administrator=data["administrator"],
            transfer=transfer,
            holding_account=data["holding_account"],
            state=LedgerState(data.get("state", LedgerState.ACTIVE.value)),
            revoked_at=int(revoked_at) if revoked_at is not None else None,
            listener=listener,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _release(self, b: Beneficiary, now: int) -> int:
        """Shared payout routine for release, release_all and revoke.

        Caller must hold the ledger lock.
        """
        amount = accrual.releasable_amount(
            self._schedule, b.share_bps, b.released, now, self._revoked_at,
        )
        if amount == 0:
            return 0

        b.record_release(amount, accrual.allocation(self._schedule, b.share_bps))
        self._in_flight += amount
        try:
            result = self._transfer.transfer(self._holding_account, b.address, amount)
        except Exception:
            b.released -= amount
            raise
        finally:
            self._in_flight -= amount

        if not result.ok:
            b.released -= amount
            self._emit(EventKind.RELEASE_FAILED, now, {
                "address": b.address,
                "amount": amount,
                "reason": result.reason,
            })
            logger.warning(
                "Release of %d to %s failed: %s", amount, b.address, result.reason,
            )
            raise TransferFailed(result.reason, b.address, amount)

        self._emit(EventKind.RELEASED, now, {"address": b.address, "amount": amount})
        logger.info("Released %d to %s", amount, b.address)
        return amount

    def _transition_to(self, new_state: LedgerState) -> None:
        allowed = LEDGER_TRANSITIONS.get(self._state, frozenset())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid ledger transition: {self._state.value} → {new_state.value}"
            )
        self._state = new_state

    def _emit(self, kind: EventKind, timestamp: int, payload: Dict[str, Any]) -> None:
        event = LedgerEvent(kind=kind, timestamp=timestamp, payload=payload)
        self._events.append(event)
        if self._listener is not None:
            self._listener(event)

    def _now(self, now: Optional[TimeLike]) -> int:
        if now is None:
            return int(self._clock())
        return int(as_timestamp(now))

    def _get(self, address: str) -> Beneficiary:
        b = self._index.get(address)
        if b is None:
            raise UnknownBeneficiary(address)
        return b
