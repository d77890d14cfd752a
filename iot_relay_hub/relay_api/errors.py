"""Error taxonomy of the relay hub.

- ValidationError: malformed/missing request fields, mapped to HTTP 400.
- StorageError: durable store fault or timeout, mapped to HTTP 500.
- UpstreamDeviceError: actuator forwarding failed, absorbed into the response.
- ProtocolError: malformed subscriber frame, dropped and logged.
"""

from __future__ import annotations

from typing import Any, Optional


class RelayHubError(Exception):
    """Base class for every error raised by the relay hub."""


class ValidationError(RelayHubError):
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class StorageError(RelayHubError):
    def __init__(self, operation: str, path: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown cause"
        super().__init__(f"Store {operation} failed for '{path}' ({detail})")


class UpstreamDeviceError(RelayHubError):
    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Actuator call to {url} failed: {reason}")


class ProtocolError(RelayHubError):
    def __init__(self, message: str, frame: Any = None):
        self.frame = frame
        super().__init__(message)
