"""Durable mirror of the state snapshot.

Writes ``bulb_state`` and ``sensors/environment`` separately so a reader of
one path never clobbers the other. The in-memory StateRegistry stays the
source of truth: a failed mirror write is logged, never surfaced.

Two policies (PERSIST_MODE):
- background: schedule the write and return immediately ("pending").
- await: wait for the write, bounded by the store timeout
  ("synced", or "pending" on timeout, "failed" on error).
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Set

from ..errors import StorageError
from ..state.registry import StateSnapshot
from .calls import call_store
from .durable_store import DurableStore

logger = logging.getLogger(__name__)

BULB_STATE_PATH = "bulb_state"
ENVIRONMENT_PATH = "sensors/environment"


class PersistenceStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"


class SnapshotMirror:
    def __init__(
        self,
        store: DurableStore,
        *,
        mode: str = "background",
        timeout_seconds: float = 5.0,
    ) -> None:
        if mode not in ("background", "await"):
            raise ValueError(f"Unknown persist mode: {mode!r}")
        self._store = store
        self._mode = mode
        self._timeout = float(timeout_seconds)
        self._pending: Set[asyncio.Task] = set()
        # FIFO: the store sees snapshots in the order they were accepted.
        self._write_lock = asyncio.Lock()
        self.writes_ok = 0
        self.writes_failed = 0

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    async def persist(self, snapshot: StateSnapshot) -> PersistenceStatus:
        if self._mode == "background":
            task = asyncio.create_task(self._write_logged(snapshot))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return PersistenceStatus.PENDING

        return await self._write_logged(snapshot)

    async def drain(self) -> None:
        """Wait for every scheduled background write (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _write_logged(self, snapshot: StateSnapshot) -> PersistenceStatus:
        try:
            async with self._write_lock:
                await self._write(snapshot)
        except StorageError as e:
            self.writes_failed += 1
            if isinstance(e.cause, asyncio.TimeoutError):
                logger.warning("[MIRROR] Snapshot write still pending: %s", e)
                return PersistenceStatus.PENDING
            logger.error("[MIRROR] Snapshot write failed: %s", e)
            return PersistenceStatus.FAILED

        self.writes_ok += 1
        logger.debug("[MIRROR] Snapshot mirrored (bulb=%s)", snapshot.actuator_state)
        return PersistenceStatus.SYNCED

    async def _write(self, snapshot: StateSnapshot) -> None:
        await call_store(
            self._store.set,
            BULB_STATE_PATH,
            snapshot.actuator_on,
            operation="set",
            path=BULB_STATE_PATH,
            timeout=self._timeout,
        )
        await call_store(
            self._store.set,
            ENVIRONMENT_PATH,
            snapshot.environment_dict(),
            operation="set",
            path=ENVIRONMENT_PATH,
            timeout=self._timeout,
        )
