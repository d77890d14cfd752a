"""Control plane of the hub.

CommandRouter is the ONLY place that ties state, event log, fan-out and
durable mirror together. HTTP handlers and subscriber frames both end up
here.

Order of effects for a state-changing call:
1. StateRegistry mutation
2. EventStore append (event-typed calls only)
3. Broadcaster fan-out (actuator transitions only)
4. durable mirror of the snapshot (per PERSIST_MODE)

Every access-control event forces a transition and a broadcast, even when
the actuator was already in that state. Sensor readings are pull-only and
never broadcast.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..devices.actuator_client import ActuatorClient, ForwardResult
from ..errors import UpstreamDeviceError
from ..events import Event, EventCategory, is_access_granted
from ..realtime.broadcaster import Broadcaster
from ..state.registry import StateRegistry, StateSnapshot
from ..storage.event_store import EventStore
from ..storage.mirror import PersistenceStatus, SnapshotMirror

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutcome:
    snapshot: StateSnapshot
    persistence: PersistenceStatus
    delivered: int = 0
    event: Optional[Event] = None
    forward: Optional[ForwardResult] = None


class CommandRouter:
    def __init__(
        self,
        registry: StateRegistry,
        events: EventStore,
        broadcaster: Broadcaster,
        mirror: SnapshotMirror,
        actuator: Optional[ActuatorClient] = None,
    ) -> None:
        self._registry = registry
        self._events = events
        self._broadcaster = broadcaster
        self._mirror = mirror
        self._actuator = actuator
        # Held from state change to broadcast, so subscribers see transitions
        # in the order they were accepted.
        self._transition_lock = asyncio.Lock()
        broadcaster.bind_commands(self.set_actuator, self.report_actuator_state)

    @property
    def registry(self) -> StateRegistry:
        return self._registry

    @property
    def events(self) -> EventStore:
        return self._events

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    # ------------------------------------------------------------------
    # Actuator
    # ------------------------------------------------------------------

    async def turn_on(self) -> CommandOutcome:
        return await self.set_actuator(True)

    async def turn_off(self) -> CommandOutcome:
        return await self.set_actuator(False)

    async def set_actuator(self, on: bool) -> CommandOutcome:
        """Direct toggle (HTTP or subscriber command). Not an event."""
        async with self._transition_lock:
            snapshot = await self._registry.set_actuator(on)
            delivered = await self._broadcaster.broadcast_actuator_change(on)
        persistence = await self._persist()
        logger.info("[ROUTER] Bulb %s command sent to %d clients", snapshot.actuator_state.upper(), delivered)
        return CommandOutcome(snapshot=snapshot, persistence=persistence, delivered=delivered)

    async def report_actuator_state(self, on: bool) -> CommandOutcome:
        """State reported by the bulb firmware itself; no fan-out."""
        async with self._transition_lock:
            snapshot = await self._registry.set_actuator(on)
        persistence = await self._persist()
        logger.info("[ROUTER] Bulb status reported by device: %s", snapshot.actuator_state)
        return CommandOutcome(snapshot=snapshot, persistence=persistence)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def record_access_event(
        self,
        category: EventCategory,
        status: str,
        subject_id: str,
        fields: Optional[Mapping[str, Any]] = None,
        *,
        device: Optional[str] = None,
        device_timestamp: Optional[Any] = None,
    ) -> CommandOutcome:
        """Access decision from a reader: transition, log, fan out, mirror.

        A StorageError from the append is re-raised after the broadcast and
        mirror ran, so subscribers still see the state already in memory.
        Concurrent transitions wait until this one has been broadcast.
        """
        granted = is_access_granted(status)
        draft = Event(
            category=category,
            status=status,
            subject_id=subject_id,
            source_device=device or category.default_device,
            extra=_clean_extra(fields),
        )

        try:
            async with self._transition_lock:
                snapshot = await self._registry.set_actuator(granted)
                try:
                    event = await self._events.append(category, draft, device_timestamp)
                finally:
                    delivered = await self._broadcaster.broadcast_actuator_change(granted)
        finally:
            persistence = await self._persist()

        logger.info(
            "[ROUTER] %s event: %s | %s: %s -> bulb %s",
            category.value,
            status,
            category.subject_field,
            subject_id,
            snapshot.actuator_state,
        )
        return CommandOutcome(
            snapshot=snapshot,
            persistence=persistence,
            delivered=delivered,
            event=event,
        )

    async def record_neutral_event(self, category: EventCategory, fields: Mapping[str, Any]) -> Event:
        """Event without actuator implications (keypad input): append only."""
        data = dict(fields)
        subject_field = category.subject_field
        draft = Event(
            category=category,
            status=str(data.pop("status", "") or ""),
            subject_id=str(data.pop(subject_field, "") or ""),
            source_device=str(data.pop("device", "") or category.default_device),
            extra=_clean_extra(data, drop=("timestamp",)),
        )
        return await self._events.append(category, draft, data.get("timestamp"))

    async def record_face_recognition(
        self,
        recognition_type: str,
        status: str,
        user: str,
        servo_pin: Optional[int] = None,
    ) -> CommandOutcome:
        """Face decision: same path as RFID, then forward to the actuator device."""
        fields: Dict[str, Any] = {"type": recognition_type}
        if servo_pin is not None:
            fields["servoPin"] = servo_pin

        outcome = await self.record_access_event(EventCategory.FACE, status, user, fields)
        forward = await self.forward_face_command(outcome.snapshot.actuator_on, servo_pin)
        return CommandOutcome(
            snapshot=outcome.snapshot,
            persistence=outcome.persistence,
            delivered=outcome.delivered,
            event=outcome.event,
            forward=forward,
        )

    async def forward_face_command(self, on: bool, servo_pin: Optional[int] = None) -> ForwardResult:
        if self._actuator is None:
            return ForwardResult(forwarded=False, ok=False, error="actuator endpoint not configured")

        try:
            status_code = await self._actuator.send_command(on, servo_pin)
        except UpstreamDeviceError as e:
            logger.warning("[ROUTER] Actuator forwarding failed: %s", e)
            return ForwardResult(forwarded=True, ok=False, status_code=e.status_code, error=e.reason)

        return ForwardResult(forwarded=True, ok=True, status_code=status_code)

    # ------------------------------------------------------------------
    # Sensors
    # ------------------------------------------------------------------

    async def record_sensor_reading(
        self,
        temperature: Any,
        humidity: Any,
        timestamp: Optional[Any] = None,
        datetime_iso: Optional[str] = None,
    ) -> CommandOutcome:
        """Store a sample and mirror it. Raises ValidationError. No broadcast."""
        snapshot = await self._registry.apply_sensor_reading(temperature, humidity, timestamp, datetime_iso)
        persistence = await self._persist()
        logger.info(
            "[ROUTER] Sensor data: temperature=%s humidity=%s timestamp=%s",
            snapshot.temperature,
            snapshot.humidity,
            snapshot.sample_timestamp,
        )
        return CommandOutcome(snapshot=snapshot, persistence=persistence)

    async def _persist(self) -> PersistenceStatus:
        # Mirror what is current now, not what this call saw.
        return await self._mirror.persist(await self._registry.get())


def _clean_extra(fields: Optional[Mapping[str, Any]], drop: tuple = ()) -> Dict[str, Any]:
    if not fields:
        return {}
    return {k: v for k, v in fields.items() if v is not None and k not in drop}
