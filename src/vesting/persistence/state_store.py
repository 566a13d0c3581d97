"""State store — durable snapshot of a ledger and its local asset book.

One JSON document per data directory:

    {
      "ledger": {...VestingLedger.snapshot()...},
      "asset_book": {"balances": {...}}
    }

Writes go to a temporary file that replaces the previous snapshot, so a
crash mid-write leaves the last good snapshot in place. The event log
remains the audit record; this file only saves the CLI from replaying
it on every invocation.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional, Tuple

from vesting.transfer.asset_transfer import InMemoryAssetBook


class StateStore:
    """JSON snapshot persistence for one ledger."""

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._storage_path

    def exists(self) -> bool:
        return self._storage_path.exists()

    def save(self, ledger_snapshot: dict[str, Any], asset_book: Optional[InMemoryAssetBook] = None) -> None:
        document: dict[str, Any] = {"ledger": ledger_snapshot}
        if asset_book is not None:
            document["asset_book"] = asset_book.to_dict()

        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, sort_keys=True)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self._storage_path)

    def load(self) -> Tuple[Optional[dict[str, Any]], InMemoryAssetBook]:
        """Return (ledger snapshot or None, asset book)."""
        if not self._storage_path.exists():
            return None, InMemoryAssetBook()
        with self._storage_path.open("r", encoding="utf-8") as f:
            document = json.load(f)
        return (
            document.get("ledger"),
            InMemoryAssetBook.from_dict(document.get("asset_book", {})),
        )
