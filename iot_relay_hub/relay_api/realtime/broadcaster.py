"""Fan-out of actuator changes to live subscribers.

Broadcaster is the only owner of the subscriber collection. Delivery is
best effort: each send is independent and bounded by a timeout; a
subscriber whose send fails is dropped and its connection closed, so the
client reconnects and starts again from a fresh init.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from ..clock import iso_now
from ..errors import ProtocolError
from ..state.registry import StateRegistry
from .messages import FrameKind, command_message, init_message, parse_subscriber_frame

logger = logging.getLogger(__name__)

ActuatorHandler = Callable[[bool], Awaitable[Any]]

# WebSocket "internal error"; the client is expected to reconnect.
DROPPED_CLOSE_CODE = 1011


class Subscriber(Protocol):
    """Anything that can push JSON to a client and close it (FastAPI's WebSocket does)."""

    async def send_json(self, data: Any) -> None:
        ...

    async def close(self, code: int = 1000) -> None:
        ...


class Broadcaster:
    def __init__(
        self,
        registry: StateRegistry,
        *,
        send_timeout_seconds: float = 2.0,
    ) -> None:
        self._registry = registry
        self._send_timeout = float(send_timeout_seconds)
        # Keyed by connection identity.
        self._subscribers: Dict[int, Subscriber] = {}
        self._on_command: Optional[ActuatorHandler] = None
        self._on_status_report: Optional[ActuatorHandler] = None

    def bind_commands(
        self,
        on_command: ActuatorHandler,
        on_status_report: Optional[ActuatorHandler] = None,
    ) -> None:
        """Wire subscriber-originated transitions back into the command path."""
        self._on_command = on_command
        self._on_status_report = on_status_report

    @property
    def connected_count(self) -> int:
        return len(self._subscribers)

    def is_connected(self, subscriber: Subscriber) -> bool:
        return id(subscriber) in self._subscribers

    async def on_connect(self, subscriber: Subscriber) -> None:
        self._subscribers[id(subscriber)] = subscriber
        logger.info("[WS] Client connected (%d total)", self.connected_count)

        snapshot = await self._registry.get()
        delivered = await self._send(subscriber, init_message(snapshot.actuator_on, iso_now()))
        if delivered:
            logger.info("[WS] Sent initial state: %s", snapshot.actuator_state)

    def on_disconnect(self, subscriber: Subscriber) -> None:
        if self._subscribers.pop(id(subscriber), None) is not None:
            logger.info("[WS] Client disconnected (%d remaining)", self.connected_count)

    async def broadcast_actuator_change(self, on: bool) -> int:
        """Push ``light_on``/``light_off`` to every subscriber. Returns deliveries."""
        message = command_message(on, iso_now())
        targets = list(self._subscribers.values())
        if not targets:
            return 0

        results = await asyncio.gather(*(self._send(sub, message) for sub in targets))
        delivered = sum(1 for ok in results if ok)
        logger.info(
            "[WS] Broadcast %s to %d/%d clients",
            message["command"],
            delivered,
            len(targets),
        )
        return delivered

    async def on_subscriber_command(self, subscriber: Subscriber, message: Any) -> bool:
        """Handle one inbound frame. Returns True when it was acted upon.

        Malformed or unknown frames are logged and dropped; the connection
        is left open.
        """
        try:
            frame = parse_subscriber_frame(message)
        except ProtocolError as e:
            logger.warning("[WS] Dropped frame from client %s: %s", id(subscriber), e)
            return False

        if frame.kind is FrameKind.STATUS_REPORT:
            handler = self._on_status_report
        else:
            handler = self._on_command

        if handler is None:
            logger.warning("[WS] No handler bound for %s frame; dropped", frame.kind.value)
            return False

        logger.info(
            "[WS] Client %s %s: %s",
            id(subscriber),
            frame.kind.value,
            "on" if frame.on else "off",
        )
        await handler(frame.on)
        return True

    async def _send(self, subscriber: Subscriber, message: dict) -> bool:
        try:
            await asyncio.wait_for(subscriber.send_json(message), timeout=self._send_timeout)
            return True
        except Exception as e:
            logger.warning(
                "[WS] Send to client %s failed (%s); dropping it",
                id(subscriber),
                type(e).__name__,
            )
            self.on_disconnect(subscriber)
            await self._close(subscriber)
            return False

    async def _close(self, subscriber: Subscriber) -> None:
        try:
            await asyncio.wait_for(subscriber.close(code=DROPPED_CLOSE_CODE), timeout=self._send_timeout)
        except Exception as e:
            logger.debug("[WS] Close of dropped client %s failed (%s)", id(subscriber), type(e).__name__)
