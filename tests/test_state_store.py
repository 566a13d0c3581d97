"""Tests for the state snapshot store."""

import json

from vesting.ledger import VestingLedger
from vesting.persistence.state_store import StateStore
from vesting.transfer.asset_transfer import InMemoryAssetBook


def _ledger(book: InMemoryAssetBook) -> VestingLedger:
    return VestingLedger.create(
        True, "0xToken", 1000, 0, 10, 10, 5000,
        ["alice", "bob"], [5000, 5000],
        administrator="admin", transfer=book, holding_account="vault",
    )


class TestStateStore:
    def test_missing_file_loads_empty(self, tmp_path) -> None:
        store = StateStore(tmp_path / "state.json")
        assert not store.exists()
        snapshot, book = store.load()
        assert snapshot is None
        assert book.balances == {}

    def test_round_trip(self, tmp_path) -> None:
        book = InMemoryAssetBook()
        ledger = _ledger(book)
        book.mint("vault", 1000)
        ledger.release("alice", 20)

        store = StateStore(tmp_path / "nested" / "state.json")
        store.save(ledger.snapshot(), book)
        assert store.exists()

        snapshot, restored_book = store.load()
        assert snapshot == ledger.snapshot()
        assert restored_book.balances == {"vault": 750, "alice": 250}

        restored = VestingLedger.from_snapshot(snapshot, restored_book)
        assert restored.released_amount("alice") == 250
        assert restored.release("alice", 20) == 0

    def test_without_asset_book(self, tmp_path) -> None:
        store = StateStore(tmp_path / "state.json")
        store.save(_ledger(InMemoryAssetBook()).snapshot())
        document = json.loads(store.path.read_text(encoding="utf-8"))
        assert "asset_book" not in document
        _, book = store.load()
        assert book.balances == {}

    def test_overwrite_leaves_no_temp_file(self, tmp_path) -> None:
        store = StateStore(tmp_path / "state.json")
        ledger = _ledger(InMemoryAssetBook())
        store.save(ledger.snapshot())
        store.save(ledger.snapshot())
        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]
