from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix.

    Same shape the ESP32 firmware and the dashboard already parse
    (``2024-05-01T10:15:30.123Z``).
    """
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def iso_now() -> str:
    return to_iso(utc_now())


def epoch_seconds(moment: datetime) -> int:
    return int(moment.timestamp())
