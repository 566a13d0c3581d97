"""Vesting service — facade over one ledger, its collaborator and persistence.

This is the primary programmatic interface used by the CLI. It:
- builds the ledger from validated parameters
- routes every ledger event into the append-only event log
- saves a state snapshot after every mutation
- converts ledger errors into typed ServiceResult failures

The ledger itself raises; the service never does for expected
failures (validation, authorisation, transfer errors).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from vesting.engine.validator import ScheduleParams
from vesting.errors import VestingError
from vesting.ledger import LedgerEvent, VestingLedger
from vesting.persistence.event_log import EventKind, EventLog, EventRecord
from vesting.persistence.state_store import StateStore
from vesting.policy.resolver import VestingPolicy
from vesting.transfer.asset_transfer import AssetTransfer, InMemoryAssetBook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


def _failure(exc: VestingError) -> ServiceResult:
    data: dict[str, Any] = {"error": exc.kind}
    rule = getattr(exc, "rule", None)
    if rule is not None:
        data["rule"] = rule.value
    return ServiceResult(success=False, errors=[str(exc)], data=data)


class VestingService:
    """Unified facade for one vesting ledger.

    Usage:
        service = VestingService(policy, event_log=log, state_store=store)
        service.create_schedule(params, administrator="admin", fund=True)
        service.release_all(now=...)
        service.revoke("admin")
        service.withdraw("admin")

    Persistence (optional):
        With a StateStore the ledger and the in-memory asset book are
        reloaded on construction and saved after every mutation.
    """

    def __init__(
        self,
        policy: Optional[VestingPolicy] = None,
        transfer: Optional[AssetTransfer] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._policy = policy or VestingPolicy.default()
        self._event_log = event_log or EventLog()
        self._state_store = state_store
        self._clock = clock
        self._ledger: Optional[VestingLedger] = None

        snapshot: Optional[dict[str, Any]] = None
        book = InMemoryAssetBook()
        if state_store is not None:
            snapshot, book = state_store.load()
        self._transfer: AssetTransfer = transfer if transfer is not None else book

        if snapshot is not None:
            self._ledger = VestingLedger.from_snapshot(
                snapshot, self._transfer, listener=self._record_event, clock=clock,
            )

        # Continue numbering after whatever the log already holds
        self._event_counter = self._event_log.count

    @property
    def ledger(self) -> Optional[VestingLedger]:
        return self._ledger

    @property
    def transfer(self) -> AssetTransfer:
        return self._transfer

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create_schedule(
        self,
        params: ScheduleParams,
        administrator: str,
        holding_account: Optional[str] = None,
        fund: bool = False,
    ) -> ServiceResult:
        """Validate and create the ledger.

        With fund=True and an in-memory asset book, the holding account
        is credited with total_amount, standing in for the deposit the
        administrator makes after deployment.
        """
        if self._ledger is not None:
            return ServiceResult(
                success=False,
                errors=["A vesting schedule already exists in this store"],
                data={"error": "already_exists"},
            )
        if not administrator:
            return ServiceResult(success=False, errors=["Administrator is required"])
        if fund and not isinstance(self._transfer, InMemoryAssetBook):
            return ServiceResult(
                success=False,
                errors=["Funding is only supported with the in-memory asset book"],
            )

        try:
            ledger = VestingLedger.from_params(
                params,
                administrator=administrator,
                transfer=self._transfer,
                holding_account=holding_account,
                policy=self._policy,
                listener=self._record_event,
                clock=self._clock,
            )
        except VestingError as exc:
            logger.warning("Schedule rejected: %s", exc)
            return _failure(exc)

        if fund:
            self._transfer.mint(ledger.holding_account, ledger.total_amount)

        self._ledger = ledger
        self._persist()
        return ServiceResult(success=True, data={
            "holding_account": ledger.holding_account,
            "total_amount": ledger.total_amount,
            "beneficiaries": [list(b) for b in ledger.beneficiaries()],
            "funded": fund,
        })

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self, now: Optional[int] = None) -> ServiceResult:
        ledger = self._ledger
        if ledger is None:
            return self._missing()
        return ServiceResult(success=True, data=ledger.status(now))

    def vested(self, address: str, now: Optional[int] = None) -> ServiceResult:
        ledger = self._ledger
        if ledger is None:
            return self._missing()
        try:
            return ServiceResult(success=True, data={
                "address": address,
                "vested": ledger.vested_amount(address, now),
                "released": ledger.released_amount(address),
                "releasable": ledger.releasable_amount(address, now),
                "allocation": ledger.allocation(address),
            })
        except VestingError as exc:
            return _failure(exc)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def release(self, address: str, now: Optional[int] = None) -> ServiceResult:
        return self._mutate(
            lambda ledger: {"address": address, "amount": ledger.release(address, now)},
        )

    def release_all(self, now: Optional[int] = None) -> ServiceResult:
        return self._mutate(
            lambda ledger: {"released": [list(r) for r in ledger.release_all(now)]},
        )

    def revoke(self, caller: str, now: Optional[int] = None) -> ServiceResult:
        def _revoke(ledger: VestingLedger) -> dict[str, Any]:
            ledger.revoke(caller, now)
            return {"state": ledger.state.value, "revoked_at": ledger.revoked_at}
        return self._mutate(_revoke)

    def withdraw(self, caller: str, now: Optional[int] = None) -> ServiceResult:
        return self._mutate(lambda ledger: {"amount": ledger.withdraw(caller, now)})

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _mutate(self, operation: Callable[[VestingLedger], dict[str, Any]]) -> ServiceResult:
        ledger = self._ledger
        if ledger is None:
            return self._missing()
        try:
            data = operation(ledger)
        except VestingError as exc:
            # Failed transfers may still have logged RELEASE_FAILED events
            # and earlier payouts in the same call; persist what happened.
            self._persist()
            return _failure(exc)
        self._persist()
        return ServiceResult(success=True, data=data)

    def _record_event(self, event: LedgerEvent) -> None:
        self._event_counter += 1
        if event.kind in (EventKind.RELEASED, EventKind.RELEASE_FAILED, EventKind.WITHDRAWN):
            actor_id = event.payload.get("address", "system")
        elif self._ledger is not None:
            actor_id = self._ledger.administrator
        else:
            actor_id = event.payload.get("administrator", "system")
        self._event_log.append(EventRecord.create(
            event_id=f"evt_{self._event_counter:08d}",
            event_kind=event.kind,
            actor_id=actor_id,
            payload=dict(event.payload),
            timestamp=event.timestamp,
        ))

    def _persist(self) -> None:
        if self._state_store is None or self._ledger is None:
            return
        book = self._transfer if isinstance(self._transfer, InMemoryAssetBook) else None
        self._state_store.save(self._ledger.snapshot(), book)

    @staticmethod
    def _missing() -> ServiceResult:
        return ServiceResult(
            success=False,
            errors=["No vesting schedule has been created"],
            data={"error": "no_schedule"},
        )
