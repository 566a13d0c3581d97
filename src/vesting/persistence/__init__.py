"""Persistence — append-only event log and ledger state snapshots."""

from vesting.persistence.event_log import EventKind, EventLog, EventRecord
from vesting.persistence.state_store import StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "StateStore"]
