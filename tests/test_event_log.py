"""Tests for the append-only event log — proves audit records are tamper-evident."""

import json

import pytest

from vesting.persistence.event_log import EventKind, EventLog, EventRecord


def _released(event_id: str, address: str, amount: int) -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=EventKind.RELEASED,
        actor_id=address,
        payload={"address": address, "amount": amount},
        timestamp=1749428000,
    )


class TestEventRecord:
    def test_timestamp_formatting(self) -> None:
        record = _released("evt_1", "alice", 10)
        assert record.timestamp_utc == "2025-06-09T00:13:20Z"

    def test_hash_is_deterministic(self) -> None:
        assert _released("evt_1", "alice", 10).event_hash == _released("evt_1", "alice", 10).event_hash

    def test_hash_covers_payload(self) -> None:
        assert _released("evt_1", "alice", 10).event_hash != _released("evt_1", "alice", 11).event_hash

    def test_to_dict(self) -> None:
        data = _released("evt_1", "alice", 10).to_dict()
        assert data["event_kind"] == "released"
        assert data["event_hash"].startswith("sha256:")


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_released("evt_1", "alice", 10))
        log.append(EventRecord.create("evt_2", EventKind.REVOKED, "admin", {"revoked_at": 5}, 5))
        assert log.count == 2
        assert len(log.events(EventKind.RELEASED)) == 1
        assert log.last_event.event_kind == EventKind.REVOKED

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_released("evt_1", "alice", 10))
        with pytest.raises(ValueError, match="Duplicate event ID"):
            log.append(_released("evt_1", "alice", 10))

    def test_released_total(self) -> None:
        log = EventLog()
        log.append(_released("evt_1", "alice", 10))
        log.append(_released("evt_2", "bob", 7))
        log.append(_released("evt_3", "alice", 5))
        assert log.released_total("alice") == 15
        assert log.released_total("carol") == 0

    def test_empty_log(self) -> None:
        log = EventLog()
        assert log.count == 0
        assert log.last_event is None


class TestPersistence:
    def test_reload(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_released("evt_1", "alice", 10))
        log.append(_released("evt_2", "bob", 7))

        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.events() == log.events()

    def test_tampered_record_fails_closed(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_released("evt_1", "alice", 10))

        data = json.loads(path.read_text(encoding="utf-8"))
        data["payload"]["amount"] = 10_000
        path.write_text(json.dumps(data) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_duplicate_on_recovery(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        line = json.dumps(_released("evt_1", "alice", 10).to_dict())
        path.write_text(line + "\n" + line + "\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Duplicate event ID on recovery"):
            EventLog(storage_path=path)

    def test_blank_lines_ignored(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        line = json.dumps(_released("evt_1", "alice", 10).to_dict())
        path.write_text("\n" + line + "\n\n", encoding="utf-8")
        assert EventLog(storage_path=path).count == 1
