"""Live subscribers: connection registry, fan-out and the frame protocol."""

from .broadcaster import Broadcaster, Subscriber
from .messages import ActuatorCommand, FrameKind, SubscriberFrame, parse_subscriber_frame

__all__ = [
    "Broadcaster",
    "Subscriber",
    "ActuatorCommand",
    "FrameKind",
    "SubscriberFrame",
    "parse_subscriber_frame",
]
