from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Requests (device payloads)
# ---------------------------------------------------------------------------

class SensorDataIn(BaseModel):
    # Presence and numeric checks happen in StateRegistry (400 ValidationError).
    temperature: Any = None
    humidity: Any = None
    timestamp: Optional[int] = None
    datetime: Optional[str] = None


class RfidEventIn(BaseModel):
    status: str
    tag: Union[str, int]
    action: Optional[str] = None
    device: Optional[str] = None
    timestamp: Optional[Any] = None


class FaceRecognitionIn(BaseModel):
    type: str
    status: str
    user: str
    servoPin: Optional[int] = None


class KeypadEventIn(BaseModel):
    type: str = "keypad"
    status: str = ""
    pin: Union[str, int] = ""
    device: Optional[str] = None
    timestamp: Optional[Any] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class ToggleResponse(BaseModel):
    status: str = "success"
    message: str
    currentState: str
    timestamp: str
    persistence: str


class StatusResponse(BaseModel):
    state: str
    connectedClients: int
    serverPort: int


class ReceivedReading(BaseModel):
    temperature: float
    humidity: float


class SensorDataAck(BaseModel):
    status: str = "success"
    message: str
    receivedData: ReceivedReading
    persistence: str


class SensorDataResponse(BaseModel):
    status: str = "success"
    data: dict
    serverTime: str


class EventAck(BaseModel):
    status: str = "success"
    message: str
    id: Optional[str] = None
    currentState: Optional[str] = None


class FaceRecognitionAck(EventAck):
    actuator: dict = Field(default_factory=dict)


class EventListResponse(BaseModel):
    status: str = "success"
    count: int
    data: List[dict] = Field(default_factory=list)
