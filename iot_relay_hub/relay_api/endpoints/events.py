"""Access-control / input event endpoints (RFID, face recognition, keypad)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..events import EventCategory
from ..hub import Hub
from ..schemas import (
    EventAck,
    EventListResponse,
    FaceRecognitionAck,
    FaceRecognitionIn,
    KeypadEventIn,
    RfidEventIn,
)
from .deps import get_hub

router = APIRouter(prefix="/api", tags=["events"])


async def _list_events(hub: Hub, category: EventCategory, limit: Optional[str]) -> EventListResponse:
    events = await hub.events.query_latest(category, limit)
    return EventListResponse(count=len(events), data=[e.to_dict() for e in events])


@router.post("/rfid-event", response_model=EventAck)
async def post_rfid_event(payload: RfidEventIn, hub: Hub = Depends(get_hub)):
    outcome = await hub.router.record_access_event(
        EventCategory.RFID,
        payload.status,
        str(payload.tag),
        {"action": payload.action},
        device=payload.device,
        device_timestamp=payload.timestamp,
    )
    return EventAck(
        message="RFID event recorded",
        id=outcome.event.id if outcome.event else None,
        currentState=outcome.snapshot.actuator_state,
    )


@router.get("/rfid-events", response_model=EventListResponse)
async def get_rfid_events(limit: Optional[str] = Query(default=None), hub: Hub = Depends(get_hub)):
    return await _list_events(hub, EventCategory.RFID, limit)


@router.post("/face-recognition", response_model=FaceRecognitionAck)
async def post_face_recognition(payload: FaceRecognitionIn, hub: Hub = Depends(get_hub)):
    outcome = await hub.router.record_face_recognition(
        payload.type,
        payload.status,
        payload.user,
        payload.servoPin,
    )
    return FaceRecognitionAck(
        message="Face recognition event recorded",
        id=outcome.event.id if outcome.event else None,
        currentState=outcome.snapshot.actuator_state,
        actuator=outcome.forward.to_dict() if outcome.forward else {},
    )


@router.get("/face-events", response_model=EventListResponse)
async def get_face_events(limit: Optional[str] = Query(default=None), hub: Hub = Depends(get_hub)):
    return await _list_events(hub, EventCategory.FACE, limit)


@router.post("/keypad-events", response_model=EventAck)
async def post_keypad_event(payload: KeypadEventIn, hub: Hub = Depends(get_hub)):
    event = await hub.router.record_neutral_event(
        EventCategory.KEYPAD,
        {
            "type": payload.type,
            "status": payload.status,
            "pin": str(payload.pin),
            "device": payload.device,
            "timestamp": payload.timestamp,
        },
    )
    return EventAck(message="Keypad event recorded", id=event.id)


@router.get("/keypad-events", response_model=EventListResponse)
async def get_keypad_events(limit: Optional[str] = Query(default=None), hub: Hub = Depends(get_hub)):
    return await _list_events(hub, EventCategory.KEYPAD, limit)
