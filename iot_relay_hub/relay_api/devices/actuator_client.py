"""HTTP client for the actuator device (servo lock / bulb controller).

Used to forward face-recognition decisions to the device. Best effort:
failures come back as UpstreamDeviceError and are never retried here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..errors import UpstreamDeviceError
from ..realtime.messages import ActuatorCommand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForwardResult:
    forwarded: bool
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "forwarded": self.forwarded,
            "ok": self.ok,
            "statusCode": self.status_code,
            "error": self.error,
        }


class ActuatorClient:
    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 3.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    @property
    def url(self) -> str:
        return self._url

    async def send_command(self, on: bool, servo_pin: Optional[int] = None) -> int:
        """POST the command to the device. Returns the HTTP status code."""
        payload: dict = {"command": ActuatorCommand.for_state(on).value}
        if servo_pin is not None:
            payload["servoPin"] = servo_pin

        try:
            response = await self._client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamDeviceError(self._url, f"{type(e).__name__}: {e}") from e

        if response.is_error:
            raise UpstreamDeviceError(
                self._url,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.info("[ACTUATOR] %s forwarded (HTTP %s)", payload["command"], response.status_code)
        return response.status_code

    async def aclose(self) -> None:
        await self._client.aclose()
