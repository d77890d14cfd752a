"""Process health report for ``/api/health``."""

from __future__ import annotations

import logging
import resource
import sys
import time
from dataclasses import dataclass
from typing import Optional

from ..clock import iso_now
from ..errors import StorageError
from ..storage.calls import call_store
from ..storage.durable_store import DurableStore
from ..storage.mirror import SnapshotMirror

logger = logging.getLogger(__name__)


def _max_rss_bytes() -> int:
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports KiB, macOS bytes.
    return int(peak) if sys.platform == "darwin" else int(peak) * 1024


def _current_rss_bytes() -> Optional[int]:
    try:
        with open("/proc/self/statm", "r", encoding="ascii") as fh:
            pages = int(fh.read().split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return pages * resource.getpagesize()


@dataclass
class HealthStatus:
    server_time: str
    uptime_seconds: float
    rss_bytes: Optional[int]
    max_rss_bytes: int
    store_ok: bool
    connected_clients: int
    pending_writes: int
    mirror_writes_ok: int = 0
    mirror_writes_failed: int = 0

    def to_dict(self) -> dict:
        return {
            "status": "running",
            "serverTime": self.server_time,
            "uptime": round(self.uptime_seconds, 3),
            "memoryUsage": {
                "rss": self.rss_bytes,
                "maxRss": self.max_rss_bytes,
            },
            "store": "ok" if self.store_ok else "error",
            "connectedClients": self.connected_clients,
            "pendingWrites": self.pending_writes,
            "mirrorWrites": {
                "ok": self.mirror_writes_ok,
                "failed": self.mirror_writes_failed,
            },
        }


class HealthChecker:
    def __init__(
        self,
        store: DurableStore,
        mirror: Optional[SnapshotMirror] = None,
        *,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._store = store
        self._mirror = mirror
        self._timeout = float(timeout_seconds)
        self._started = time.monotonic()

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started

    async def check_store(self) -> bool:
        """Ping the store, bounded by the store timeout."""
        try:
            return bool(
                await call_store(
                    self._store.ping,
                    operation="ping",
                    path="/",
                    timeout=self._timeout,
                )
            )
        except StorageError as e:
            logger.warning("[HEALTH] Store check failed: %s", e)
            return False

    async def get_status(self, connected_clients: int = 0) -> HealthStatus:
        mirror = self._mirror
        return HealthStatus(
            server_time=iso_now(),
            uptime_seconds=self.uptime_seconds,
            rss_bytes=_current_rss_bytes(),
            max_rss_bytes=_max_rss_bytes(),
            store_ok=await self.check_store(),
            connected_clients=connected_clients,
            pending_writes=mirror.pending_writes if mirror else 0,
            mirror_writes_ok=mirror.writes_ok if mirror else 0,
            mirror_writes_failed=mirror.writes_failed if mirror else 0,
        )
