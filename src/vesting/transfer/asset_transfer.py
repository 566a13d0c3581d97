"""Asset transfer abstraction — the ledger's only route to moving funds.

The vesting ledger never touches balances directly. It holds an account
inside some external asset book and asks a collaborator to move units
out of it. Any collaborator satisfying the AssetTransfer Protocol can
back a ledger: an on-chain token, a custody API, or the in-memory book
below.

Collaborator contract:
- transfer() is atomic: it either moves the full amount or nothing.
- transfer() reports failure through TransferResult, never by moving
  a partial amount.
- balance_of() is a read with no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a single transfer request."""

    ok: bool
    reason: str = ""

    @staticmethod
    def success() -> TransferResult:
        return TransferResult(ok=True)

    @staticmethod
    def failure(reason: str) -> TransferResult:
        return TransferResult(ok=False, reason=reason)


@runtime_checkable
class AssetTransfer(Protocol):
    """Abstract contract for the asset transfer collaborator."""

    def transfer(self, source: str, to: str, amount: int) -> TransferResult:
        """Move `amount` units from `source` to `to`, atomically."""
        ...

    def balance_of(self, account: str) -> int:
        """Units currently held by `account`."""
        ...


TransferHook = Callable[[str, str, int], None]


class InMemoryAssetBook:
    """Single-asset balance book implementing AssetTransfer.

    Used by the CLI (persisted through the state store) and by tests.
    Supports failure injection so callers can exercise the ledger's
    rollback paths:

        book = InMemoryAssetBook()
        book.mint("vault", 1000)
        book.fail_next("network down")      # next transfer fails once
        book.block("mallory", "frozen")     # every transfer to mallory fails
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None) -> None:
        self._balances: Dict[str, int] = dict(balances or {})
        self._fail_next: Optional[str] = None
        self._blocked: Dict[str, str] = {}
        self._hook: Optional[TransferHook] = None
        self.transfers: list[tuple[str, str, int]] = []

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")
        self._balances[account] = self._balances.get(account, 0) + amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    @property
    def balances(self) -> Dict[str, int]:
        return dict(self._balances)

    def fail_next(self, reason: str = "injected failure") -> None:
        self._fail_next = reason

    def block(self, account: str, reason: str = "recipient blocked") -> None:
        self._blocked[account] = reason

    def unblock(self, account: str) -> None:
        self._blocked.pop(account, None)

    def on_transfer(self, hook: Optional[TransferHook]) -> None:
        """Register a callback invoked before each transfer is applied.

        The hook runs while the ledger is mid-operation, which lets
        tests re-enter the ledger the way a malicious token could.
        """
        self._hook = hook

    def transfer(self, source: str, to: str, amount: int) -> TransferResult:
        if self._fail_next is not None:
            reason, self._fail_next = self._fail_next, None
            return TransferResult.failure(reason)
        if to in self._blocked:
            return TransferResult.failure(self._blocked[to])
        if amount < 0:
            return TransferResult.failure("negative amount")
        if self.balance_of(source) < amount:
            return TransferResult.failure(
                f"insufficient balance: {source} holds {self.balance_of(source)}, "
                f"needs {amount}"
            )
        if self._hook is not None:
            self._hook(source, to, amount)
            # The hook may have spent from source
            if self.balance_of(source) < amount:
                return TransferResult.failure("insufficient balance after callback")
        self._balances[source] = self.balance_of(source) - amount
        self._balances[to] = self.balance_of(to) + amount
        self.transfers.append((source, to, amount))
        return TransferResult.success()

    def to_dict(self) -> dict:
        return {"balances": dict(self._balances)}

    @staticmethod
    def from_dict(data: dict) -> InMemoryAssetBook:
        return InMemoryAssetBook(
            {k: int(v) for k, v in data.get("balances", {}).items()}
        )
