"""Access-control / input events (RFID, keypad, face recognition)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

ACCESS_GRANTED = "granted access"


class EventCategory(str, Enum):
    """Event log categories. The value is the store path of the log."""

    RFID = "rfid_events"
    KEYPAD = "keypad_events"
    FACE = "face_events"

    @property
    def subject_field(self) -> str:
        return _SUBJECT_FIELDS[self]

    @property
    def default_device(self) -> str:
        return _DEFAULT_DEVICES[self]


_SUBJECT_FIELDS = {
    EventCategory.RFID: "tag",
    EventCategory.KEYPAD: "pin",
    EventCategory.FACE: "user",
}

_DEFAULT_DEVICES = {
    EventCategory.RFID: "ESP32_RFID_Reader",
    EventCategory.KEYPAD: "ESP32_Keypad",
    EventCategory.FACE: "ESP32_Face_Recognition",
}

# Keys a stored record owns; anything else is carried in ``extra``.
_CORE_KEYS = {"id", "status", "timestamp", "datetime", "device"}


def is_access_granted(status: Optional[str]) -> bool:
    # Exact, case-sensitive match: that is what the readers send.
    return status == ACCESS_GRANTED


@dataclass(frozen=True)
class Event:
    """Immutable event record.

    ``id``, ``timestamp`` and ``datetime`` are assigned when the event is
    appended; a draft built by a caller has them unset.
    """

    category: EventCategory
    status: str
    subject_id: str
    source_device: str
    timestamp: Optional[int] = None
    datetime: Optional[str] = None
    id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict:
        """Stored form (without the key, which the store owns)."""
        record: dict = {
            "status": self.status,
            self.category.subject_field: self.subject_id,
            "timestamp": self.timestamp,
            "datetime": self.datetime,
            "device": self.source_device,
        }
        for key, value in self.extra.items():
            record.setdefault(key, value)
        return record

    def to_dict(self) -> dict:
        return {"id": self.id, **self.to_record()}

    @classmethod
    def from_record(cls, category: EventCategory, key: str, record: dict) -> "Event":
        subject_field = category.subject_field
        extra = {
            k: v for k, v in record.items()
            if k not in _CORE_KEYS and k != subject_field
        }
        timestamp = record.get("timestamp")
        return cls(
            category=category,
            status=str(record.get("status") or ""),
            subject_id=str(record.get(subject_field) or ""),
            source_device=str(record.get("device") or category.default_device),
            timestamp=int(timestamp) if timestamp is not None else None,
            datetime=record.get("datetime"),
            id=key,
            extra=extra,
        )
