"""Wiring of the hub components for one process."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..common.config import Settings
from ..common.db import get_engine
from .commands.router import CommandRouter
from .devices.actuator_client import ActuatorClient
from .monitoring.health import HealthChecker
from .realtime.broadcaster import Broadcaster
from .state.registry import StateRegistry
from .storage.durable_store import DurableStore, InMemoryDurableStore, SqlDurableStore
from .storage.event_store import EventStore
from .storage.mirror import SnapshotMirror

logger = logging.getLogger(__name__)


@dataclass
class Hub:
    settings: Settings
    store: DurableStore
    registry: StateRegistry
    events: EventStore
    mirror: SnapshotMirror
    broadcaster: Broadcaster
    router: CommandRouter
    health: HealthChecker
    actuator: Optional[ActuatorClient] = None

    async def shutdown(self) -> None:
        await self.mirror.drain()
        if self.actuator is not None:
            await self.actuator.aclose()


def build_store(settings: Settings) -> DurableStore:
    if settings.store_backend == "memory":
        logger.warning("[HUB] STORE_BACKEND=memory - nothing will survive a restart")
        return InMemoryDurableStore()
    return SqlDurableStore(get_engine(settings))


def build_hub(settings: Settings, store: Optional[DurableStore] = None) -> Hub:
    store = store if store is not None else build_store(settings)

    registry = StateRegistry()
    events = EventStore(
        store,
        timeout_seconds=settings.store_timeout_seconds,
        default_limit=settings.event_query_default_limit,
        max_limit=settings.event_query_max_limit,
    )
    mirror = SnapshotMirror(
        store,
        mode=settings.persist_mode,
        timeout_seconds=settings.store_timeout_seconds,
    )
    broadcaster = Broadcaster(registry, send_timeout_seconds=settings.broadcast_send_timeout_seconds)

    actuator = None
    if settings.actuator_url:
        actuator = ActuatorClient(settings.actuator_url, timeout_seconds=settings.actuator_timeout_seconds)
    else:
        logger.info("[HUB] ACTUATOR_URL not configured - face commands will not be forwarded")

    router = CommandRouter(registry, events, broadcaster, mirror, actuator)

    logger.info(
        "[HUB] Ready store=%s persist_mode=%s",
        type(store).__name__,
        settings.persist_mode,
    )
    return Hub(
        settings=settings,
        store=store,
        registry=registry,
        events=events,
        mirror=mirror,
        broadcaster=broadcaster,
        router=router,
        health=HealthChecker(store, mirror, timeout_seconds=settings.store_timeout_seconds),
        actuator=actuator,
    )
