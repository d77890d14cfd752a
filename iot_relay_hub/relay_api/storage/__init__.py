"""Durable storage: the store collaborator, the event log and the snapshot mirror."""

from .durable_store import DurableStore, InMemoryDurableStore, SqlDurableStore
from .event_store import EventStore
from .mirror import PersistenceStatus, SnapshotMirror

__all__ = [
    "DurableStore",
    "InMemoryDurableStore",
    "SqlDurableStore",
    "EventStore",
    "PersistenceStatus",
    "SnapshotMirror",
]
