"""Live-connection protocol.

Server → subscriber:
    {"type": "init", "bulbState": "on"|"off", "timestamp": ISO}   (on connect)
    {"command": "light_on"|"light_off", "timestamp": ISO}          (on transition)

Subscriber → server:
    {"command": "light_on"|"light_off"}    request a transition
    "status:on" / "status:off"             plain-text report from bulb firmware
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ..errors import ProtocolError

STATUS_REPORT_PREFIX = "status:"


class ActuatorCommand(str, Enum):
    LIGHT_ON = "light_on"
    LIGHT_OFF = "light_off"

    @property
    def turns_on(self) -> bool:
        return self is ActuatorCommand.LIGHT_ON

    @classmethod
    def for_state(cls, on: bool) -> "ActuatorCommand":
        return cls.LIGHT_ON if on else cls.LIGHT_OFF


class FrameKind(str, Enum):
    COMMAND = "command"
    STATUS_REPORT = "status_report"


@dataclass(frozen=True)
class SubscriberFrame:
    kind: FrameKind
    on: bool


def init_message(on: bool, timestamp: str) -> dict:
    return {"type": "init", "bulbState": "on" if on else "off", "timestamp": timestamp}


def command_message(on: bool, timestamp: str) -> dict:
    return {"command": ActuatorCommand.for_state(on).value, "timestamp": timestamp}


def _parse_status_report(text: str) -> SubscriberFrame:
    state = text[len(STATUS_REPORT_PREFIX):].strip().lower()
    if state not in ("on", "off"):
        raise ProtocolError(f"Unknown status report: {text!r}", frame=text)
    return SubscriberFrame(kind=FrameKind.STATUS_REPORT, on=state == "on")


def parse_subscriber_frame(frame: Union[str, bytes, dict, Any]) -> SubscriberFrame:
    """Parse one inbound frame. Raises ProtocolError on anything unrecognised."""
    if isinstance(frame, bytes):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError("Frame is not valid UTF-8", frame=frame) from e

    if isinstance(frame, str):
        text = frame.strip()
        if text.startswith(STATUS_REPORT_PREFIX):
            return _parse_status_report(text)
        try:
            frame = json.loads(text)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON: {e}", frame=text) from e

    if not isinstance(frame, dict):
        raise ProtocolError("Frame must be a JSON object", frame=frame)

    raw_command = frame.get("command")
    try:
        command = ActuatorCommand(raw_command)
    except ValueError:
        raise ProtocolError(f"Unknown command: {raw_command!r}", frame=frame) from None

    return SubscriberFrame(kind=FrameKind.COMMAND, on=command.turns_on)
