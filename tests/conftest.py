"""Shared fixtures for the relay hub tests."""

from __future__ import annotations

import pytest

from iot_relay_hub.common.config import Settings
from iot_relay_hub.relay_api.commands.router import CommandRouter
from iot_relay_hub.relay_api.realtime.broadcaster import Broadcaster
from iot_relay_hub.relay_api.state.registry import StateRegistry
from iot_relay_hub.relay_api.storage.durable_store import InMemoryDurableStore
from iot_relay_hub.relay_api.storage.event_store import EventStore
from iot_relay_hub.relay_api.storage.mirror import SnapshotMirror


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend="memory", persist_mode="await", port=3000)


@pytest.fixture
def store() -> InMemoryDurableStore:
    return InMemoryDurableStore()


@pytest.fixture
def registry() -> StateRegistry:
    return StateRegistry()


@pytest.fixture
def event_store(store) -> EventStore:
    return EventStore(store, timeout_seconds=2.0)


@pytest.fixture
def mirror(store) -> SnapshotMirror:
    return SnapshotMirror(store, mode="await", timeout_seconds=2.0)


@pytest.fixture
def broadcaster(registry) -> Broadcaster:
    return Broadcaster(registry, send_timeout_seconds=0.2)


@pytest.fixture
def command_router(registry, event_store, broadcaster, mirror) -> CommandRouter:
    return CommandRouter(registry, event_store, broadcaster, mirror)
