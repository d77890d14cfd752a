"""Fake subscribers and stores used across the test suite."""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Any, List, Optional

from iot_relay_hub.relay_api.storage.durable_store import InMemoryDurableStore


class RecordingSubscriber:
    """Subscriber that keeps every message it was sent."""

    def __init__(self) -> None:
        self.messages: List[dict] = []
        self.closed_with: Optional[int] = None

    async def send_json(self, data: Any) -> None:
        self.messages.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    @property
    def commands(self) -> List[str]:
        return [m["command"] for m in self.messages if "command" in m]

    @property
    def inits(self) -> List[dict]:
        return [m for m in self.messages if m.get("type") == "init"]


class BrokenSubscriber(RecordingSubscriber):
    """Connection that died without a close frame."""

    async def send_json(self, data: Any) -> None:
        raise ConnectionResetError("peer gone")


class StalledSubscriber(RecordingSubscriber):
    """Connection whose send never completes."""

    async def send_json(self, data: Any) -> None:
        await asyncio.sleep(3600)


class FlakySubscriber(RecordingSubscriber):
    """Fails the next send once ``fail_next`` is set, then works again."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next = False

    async def send_json(self, data: Any) -> None:
        if self.fail_next:
            self.fail_next = False
            raise ConnectionResetError("transient")
        await super().send_json(data)


class FailingStore(InMemoryDurableStore):
    """Store whose appends always fail (disk full, DB down...)."""

    def push(self, path: str, record: dict) -> str:  # type: ignore[override]
        raise RuntimeError("store unavailable")


class GatedStore(InMemoryDurableStore):
    """Store whose first append blocks until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.blocked = threading.Event()
        self.release = threading.Event()
        self._gate_used = False

    def push(self, path: str, record: dict) -> str:  # type: ignore[override]
        if not self._gate_used:
            self._gate_used = True
            self.blocked.set()
            self.release.wait(timeout=5)
        return super().push(path, record)


class HangingStore(InMemoryDurableStore):
    """Store whose ping takes ``delay`` seconds (DB not answering)."""

    def __init__(self, delay: float = 1.0) -> None:
        super().__init__()
        self.delay = delay

    def ping(self) -> bool:  # type: ignore[override]
        time.sleep(self.delay)
        return True
