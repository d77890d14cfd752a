"""CommandRouter tests.

Covers the orchestration rules:
1. turn_on/turn_off: last writer wins, broadcast, mirror, no event
2. access events: granted -> on, anything else -> off, one entry, always broadcast
3. sensor readings: mirrored, never broadcast
4. neutral events: append only
5. degraded paths: storage fault, actuator forwarding fault
6. concurrent transitions are broadcast in acceptance order

Run:
    pytest tests/test_command_router.py -v
"""

import asyncio

import httpx
import pytest

from iot_relay_hub.relay_api.commands.router import CommandRouter
from iot_relay_hub.relay_api.devices.actuator_client import ActuatorClient
from iot_relay_hub.relay_api.errors import StorageError, ValidationError
from iot_relay_hub.relay_api.events import EventCategory
from iot_relay_hub.relay_api.realtime.broadcaster import Broadcaster
from iot_relay_hub.relay_api.storage.event_store import EventStore
from iot_relay_hub.relay_api.storage.mirror import PersistenceStatus, SnapshotMirror

from tests.fakes import FailingStore, GatedStore, RecordingSubscriber


# =============================================================================
# HELPERS
# =============================================================================

async def _connected(broadcaster: Broadcaster) -> RecordingSubscriber:
    sub = RecordingSubscriber()
    await broadcaster.on_connect(sub)
    return sub


def _actuator(handler) -> ActuatorClient:
    return ActuatorClient("http://actuator.local/servo", transport=httpx.MockTransport(handler))


async def _wait_until_blocked(store: GatedStore) -> None:
    for _ in range(500):
        if store.blocked.is_set():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("append never reached the store")


# =============================================================================
# TEST 1: DIRECT TOGGLES
# =============================================================================

class TestToggles:

    @pytest.mark.asyncio
    async def test_last_call_wins(self, command_router, registry):
        for call in ("on", "off", "on", "on", "off"):
            if call == "on":
                await command_router.turn_on()
            else:
                await command_router.turn_off()

        assert (await registry.get()).actuator_on is False

    @pytest.mark.asyncio
    async def test_toggle_broadcasts_and_mirrors(self, command_router, broadcaster, store):
        sub = await _connected(broadcaster)

        outcome = await command_router.turn_on()

        assert outcome.snapshot.actuator_on is True
        assert outcome.delivered == 1
        assert outcome.persistence is PersistenceStatus.SYNCED
        assert sub.commands == ["light_on"]
        assert store.get("bulb_state") is True

    @pytest.mark.asyncio
    async def test_toggle_is_not_an_event(self, command_router, event_store):
        await command_router.turn_on()
        for category in EventCategory:
            assert await event_store.query_latest(category, 10) == []

    @pytest.mark.asyncio
    async def test_subscriber_command_goes_through_router(self, command_router, broadcaster, registry):
        sender = await _connected(broadcaster)
        other = await _connected(broadcaster)

        await broadcaster.on_subscriber_command(sender, '{"command": "light_on"}')

        assert (await registry.get()).actuator_on is True
        assert sender.commands == ["light_on"]
        assert other.commands == ["light_on"]

    @pytest.mark.asyncio
    async def test_status_report_updates_without_broadcast(self, command_router, broadcaster, registry, store):
        sub = await _connected(broadcaster)

        await broadcaster.on_subscriber_command(sub, "status:on")

        assert (await registry.get()).actuator_on is True
        assert sub.commands == []
        assert store.get("bulb_state") is True


# =============================================================================
# TEST 2: ACCESS EVENTS
# =============================================================================

class TestAccessEvents:

    @pytest.mark.asyncio
    async def test_granted_turns_on_and_logs_once(self, command_router, registry, event_store):
        outcome = await command_router.record_access_event(EventCategory.RFID, "granted access", "A1")

        assert (await registry.get()).actuator_on is True
        events = await event_store.query_latest(EventCategory.RFID, 10)
        assert len(events) == 1
        assert events[0].id == outcome.event.id
        assert events[0].status == "granted access"
        assert events[0].subject_id == "A1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["denied", "Granted Access", "granted", ""])
    async def test_anything_else_turns_off(self, command_router, registry, status):
        await command_router.turn_on()

        await command_router.record_access_event(EventCategory.RFID, status, "B2")

        assert (await registry.get()).actuator_on is False

    @pytest.mark.asyncio
    async def test_no_op_transition_still_broadcasts(self, command_router, broadcaster):
        sub = await _connected(broadcaster)

        await command_router.record_access_event(EventCategory.RFID, "granted access", "A1")
        await command_router.record_access_event(EventCategory.RFID, "granted access", "A1")

        assert sub.commands == ["light_on", "light_on"]

    @pytest.mark.asyncio
    async def test_optional_fields_are_stored(self, command_router, event_store):
        await command_router.record_access_event(
            EventCategory.RFID,
            "denied",
            "C3",
            {"action": "door", "unused": None},
        )
        stored = (await event_store.query_latest(EventCategory.RFID, 1))[0].to_dict()

        assert stored["action"] == "door"
        assert "unused" not in stored

    @pytest.mark.asyncio
    async def test_storage_fault_still_broadcasts_then_raises(self, registry, mirror):
        broadcaster = Broadcaster(registry, send_timeout_seconds=0.2)
        router = CommandRouter(registry, EventStore(FailingStore(), timeout_seconds=1.0), broadcaster, mirror)
        sub = await _connected(broadcaster)

        with pytest.raises(StorageError):
            await router.record_access_event(EventCategory.RFID, "granted access", "A1")

        assert (await registry.get()).actuator_on is True
        assert sub.commands == ["light_on"]


# =============================================================================
# TEST 3: SENSOR READINGS
# =============================================================================

class TestSensorReadings:

    @pytest.mark.asyncio
    async def test_mirrored_not_broadcast(self, command_router, broadcaster, store):
        sub = await _connected(broadcaster)

        outcome = await command_router.record_sensor_reading(21.37, 55.04)

        assert outcome.snapshot.temperature == pytest.approx(21.4)
        assert outcome.snapshot.humidity == pytest.approx(55.0)
        assert sub.commands == []
        assert store.get("sensors/environment")["temperature"] == pytest.approx(21.4)

    @pytest.mark.asyncio
    async def test_validation_error_propagates(self, command_router):
        with pytest.raises(ValidationError):
            await command_router.record_sensor_reading(None, 50)


# =============================================================================
# TEST 4: NEUTRAL EVENTS
# =============================================================================

class TestNeutralEvents:

    @pytest.mark.asyncio
    async def test_keypad_append_only(self, command_router, broadcaster, registry, event_store):
        sub = await _connected(broadcaster)

        event = await command_router.record_neutral_event(
            EventCategory.KEYPAD,
            {"type": "keypad", "status": "wrong pin", "pin": "1234", "timestamp": 99},
        )

        assert (await registry.get()).actuator_on is False
        assert sub.commands == []
        stored = (await event_store.query_latest(EventCategory.KEYPAD, 1))[0].to_dict()
        assert stored["id"] == event.id
        assert stored["pin"] == "1234"
        assert stored["type"] == "keypad"
        assert stored["device"] == "ESP32_Keypad"
        assert stored["deviceTimestamp"] == 99


# =============================================================================
# TEST 5: FACE RECOGNITION FORWARDING
# =============================================================================

class TestFaceRecognition:

    @pytest.mark.asyncio
    async def test_forwards_command_to_actuator(self, registry, event_store, broadcaster, mirror):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        router = CommandRouter(registry, event_store, broadcaster, mirror, _actuator(handler))

        outcome = await router.record_face_recognition("face", "granted access", "alice", servo_pin=13)

        assert outcome.snapshot.actuator_on is True
        assert outcome.forward.ok is True
        assert outcome.forward.status_code == 200
        assert len(seen) == 1
        assert b'"light_on"' in seen[0].content
        assert b'"servoPin":13' in seen[0].content.replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_actuator_failure_is_absorbed(self, registry, event_store, broadcaster, mirror):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        router = CommandRouter(registry, event_store, broadcaster, mirror, _actuator(handler))

        outcome = await router.record_face_recognition("face", "unknown face", "bob")

        assert outcome.snapshot.actuator_on is False
        assert outcome.forward.forwarded is True
        assert outcome.forward.ok is False
        assert "ConnectError" in outcome.forward.error
        assert len(await event_store.query_latest(EventCategory.FACE, 10)) == 1

    @pytest.mark.asyncio
    async def test_actuator_http_error_is_absorbed(self, registry, event_store, broadcaster, mirror):
        router = CommandRouter(
            registry,
            event_store,
            broadcaster,
            mirror,
            _actuator(lambda request: httpx.Response(503)),
        )

        outcome = await router.record_face_recognition("face", "granted access", "carol")

        assert outcome.forward.ok is False
        assert outcome.forward.status_code == 503

    @pytest.mark.asyncio
    async def test_not_configured(self, command_router):
        outcome = await command_router.record_face_recognition("face", "granted access", "dave")

        assert outcome.forward.forwarded is False
        assert outcome.snapshot.actuator_on is True


# =============================================================================
# TEST 6: BACKGROUND MIRROR
# =============================================================================

class TestBackgroundMirror:

    @pytest.mark.asyncio
    async def test_returns_pending_then_lands_in_order(self, registry, event_store, broadcaster, store):
        mirror = SnapshotMirror(store, mode="background", timeout_seconds=2.0)
        router = CommandRouter(registry, event_store, broadcaster, mirror)

        first = await router.turn_on()
        await router.turn_off()
        await router.record_sensor_reading(18.26, 40)
        await mirror.drain()

        assert first.persistence is PersistenceStatus.PENDING
        assert mirror.pending_writes == 0
        assert store.get("bulb_state") is False
        assert store.get("sensors/environment")["temperature"] == pytest.approx(18.3)


# =============================================================================
# TEST 7: CONCURRENT TRANSITIONS
# =============================================================================

class TestConcurrentTransitions:

    @staticmethod
    def _gated_router(registry):
        store = GatedStore()
        broadcaster = Broadcaster(registry, send_timeout_seconds=0.2)
        router = CommandRouter(
            registry,
            EventStore(store, timeout_seconds=5.0),
            broadcaster,
            SnapshotMirror(store, mode="await", timeout_seconds=2.0),
        )
        return store, broadcaster, router

    @pytest.mark.asyncio
    async def test_toggle_waits_for_slow_access_event(self, registry):
        store, broadcaster, router = self._gated_router(registry)
        sub = await _connected(broadcaster)

        granted = asyncio.create_task(router.record_access_event(EventCategory.RFID, "granted access", "A1"))
        await _wait_until_blocked(store)
        turn_off = asyncio.create_task(router.turn_off())
        await asyncio.sleep(0.05)
        store.release.set()
        await asyncio.gather(granted, turn_off)

        state = await registry.get()
        assert state.actuator_on is False
        assert sub.commands == ["light_on", "light_off"]
        assert store.get("bulb_state") is False

    @pytest.mark.asyncio
    async def test_access_events_broadcast_in_acceptance_order(self, registry):
        store, broadcaster, router = self._gated_router(registry)
        sub = await _connected(broadcaster)

        granted = asyncio.create_task(router.record_access_event(EventCategory.RFID, "granted access", "A1"))
        await _wait_until_blocked(store)
        denied = asyncio.create_task(router.record_access_event(EventCategory.RFID, "denied", "B2"))
        await asyncio.sleep(0.05)
        store.release.set()
        await asyncio.gather(granted, denied)

        state = await registry.get()
        last_command = sub.commands[-1]
        assert last_command == ("light_on" if state.actuator_on else "light_off")
        assert sub.commands == ["light_on", "light_off"]
        assert store.get("bulb_state") is state.actuator_on
        events = await router.events.query_latest(EventCategory.RFID, 10)
        assert len(events) == 2
