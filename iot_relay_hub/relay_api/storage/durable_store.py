"""Durable store collaborator.

The hub treats the store as an opaque key/value tree with append-only
logs under some paths (``rfid_events``, ``keypad_events``, ...) and plain
values under others (``bulb_state``, ``sensors/environment``).

Implementations are synchronous; callers run them in the threadpool.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
import uuid
from typing import Any, List, Protocol, Tuple

from sqlalchemy import JSON, BigInteger, Column, Integer, MetaData, String, Table, select, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

_key_counter = itertools.count()
_key_lock = threading.Lock()


def make_push_key() -> str:
    """Unique key: 13 digit epoch millis + 4 hex sequence + random suffix.

    Keys only sort by the millisecond they were made in; within one
    millisecond the sequence may wrap. Log order comes from the store.
    """
    with _key_lock:
        seq = next(_key_counter) % 0x10000
    return f"{int(time.time() * 1000):013d}{seq:04x}{uuid.uuid4().hex[:6]}"


class DurableStore(Protocol):
    """Abstract durable store used by EventStore and the snapshot mirror."""

    def push(self, path: str, record: dict) -> str:
        """Append ``record`` under ``path`` and return its store key."""
        ...

    def latest(self, path: str, limit: int) -> List[Tuple[str, dict]]:
        """Up to ``limit`` entries of ``path``, newest first.

        Ordered by the record's ``timestamp`` descending, ties broken by
        insertion order (later insertions first).
        """
        ...

    def set(self, path: str, value: Any) -> None:
        """Overwrite the value stored at ``path``."""
        ...

    def get(self, path: str) -> Any:
        ...

    def ping(self) -> bool:
        ...


def _order_value(record: dict) -> int:
    try:
        return int(record.get("timestamp") or 0)
    except (TypeError, ValueError):
        return 0


class InMemoryDurableStore(DurableStore):
    """Process-local store for development and tests.

    Nothing survives a restart.
    """

    def __init__(self) -> None:
        self._logs: dict[str, list[Tuple[int, str, dict]]] = {}
        self._values: dict[str, Any] = {}
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def push(self, path: str, record: dict) -> str:  # type: ignore[override]
        key = make_push_key()
        with self._lock:
            self._logs.setdefault(path, []).append((next(self._seq), key, dict(record)))
        return key

    def latest(self, path: str, limit: int) -> List[Tuple[str, dict]]:  # type: ignore[override]
        with self._lock:
            entries = list(self._logs.get(path, []))
        entries.sort(key=lambda e: (_order_value(e[2]), e[0]), reverse=True)
        return [(key, dict(record)) for _, key, record in entries[:limit]]

    def set(self, path: str, value: Any) -> None:  # type: ignore[override]
        with self._lock:
            self._values[path] = value

    def get(self, path: str) -> Any:  # type: ignore[override]
        with self._lock:
            return self._values.get(path)

    def ping(self) -> bool:  # type: ignore[override]
        return True


metadata = MetaData()

log_entries = Table(
    "relay_log_entries",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("path", String(128), nullable=False, index=True),
    Column("entry_key", String(64), nullable=False, unique=True),
    Column("order_ts", BigInteger, nullable=False, index=True),
    Column("payload", JSON, nullable=False),
)

kv_values = Table(
    "relay_kv_values",
    metadata,
    Column("path", String(128), primary_key=True),
    Column("value", JSON, nullable=True),
)


class SqlDurableStore(DurableStore):
    """Durable store on top of any SQLAlchemy engine (SQLite, PostgreSQL, ...)."""

    def __init__(self, engine: Engine, *, create_schema: bool = True) -> None:
        self._engine = engine
        if create_schema:
            metadata.create_all(engine)
            logger.info("[STORE] Schema ready (relay_log_entries, relay_kv_values)")

    def push(self, path: str, record: dict) -> str:  # type: ignore[override]
        key = make_push_key()
        with self._engine.begin() as conn:
            conn.execute(
                log_entries.insert().values(
                    path=path,
                    entry_key=key,
                    order_ts=_order_value(record),
                    payload=record,
                )
            )
        return key

    def latest(self, path: str, limit: int) -> List[Tuple[str, dict]]:  # type: ignore[override]
        stmt = (
            select(log_entries.c.entry_key, log_entries.c.payload)
            .where(log_entries.c.path == path)
            .order_by(log_entries.c.order_ts.desc(), log_entries.c.seq.desc())
            .limit(limit)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [(str(row.entry_key), dict(row.payload)) for row in rows]

    def set(self, path: str, value: Any) -> None:  # type: ignore[override]
        # Delete + insert keeps this portable across dialects (no upsert syntax).
        with self._engine.begin() as conn:
            conn.execute(kv_values.delete().where(kv_values.c.path == path))
            conn.execute(kv_values.insert().values(path=path, value=value))

    def get(self, path: str) -> Any:  # type: ignore[override]
        with self._engine.connect() as conn:
            row = conn.execute(select(kv_values.c.value).where(kv_values.c.path == path)).fetchone()
        return row[0] if row is not None else None

    def ping(self) -> bool:  # type: ignore[override]
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("[STORE] Ping failed")
            return False
