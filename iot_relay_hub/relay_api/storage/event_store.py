"""Append-only event log per category, on top of the durable store."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List, Optional

from ..clock import epoch_seconds, to_iso, utc_now
from ..events import Event, EventCategory
from .calls import call_store
from .durable_store import DurableStore

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 10


class EventStore:
    def __init__(
        self,
        store: DurableStore,
        *,
        timeout_seconds: float = 5.0,
        default_limit: int = DEFAULT_QUERY_LIMIT,
        max_limit: int = 500,
    ) -> None:
        self._store = store
        self._timeout = float(timeout_seconds)
        self._default_limit = int(default_limit)
        self._max_limit = int(max_limit)

    def normalize_limit(self, limit: Any) -> int:
        """Page size actually used for a query.

        Non-positive or unparsable values fall back to the default;
        values above the cap are clamped to it.
        """
        try:
            value = int(limit)
        except (TypeError, ValueError):
            return self._default_limit
        if value <= 0:
            return self._default_limit
        return min(value, self._max_limit)

    async def append(
        self,
        category: EventCategory,
        draft: Event,
        device_timestamp: Optional[Any] = None,
    ) -> Event:
        """Stamp ``draft`` with the server clock and append it.

        The server clock always orders the log. A device-supplied timestamp
        is kept verbatim as ``deviceTimestamp``. Raises StorageError.
        """
        if draft.category is not category:
            draft = replace(draft, category=category)

        now = utc_now()
        extra = dict(draft.extra)
        if device_timestamp is not None:
            extra["deviceTimestamp"] = device_timestamp

        event = replace(
            draft,
            timestamp=epoch_seconds(now),
            datetime=to_iso(now),
            extra=extra,
        )
        key = await call_store(
            self._store.push,
            category.value,
            event.to_record(),
            operation="append",
            path=category.value,
            timeout=self._timeout,
        )
        logger.info(
            "[EVENTS] %s appended id=%s status=%s subject=%s",
            category.value,
            key,
            event.status,
            event.subject_id,
        )
        return replace(event, id=key)

    async def query_latest(self, category: EventCategory, limit: Any = DEFAULT_QUERY_LIMIT) -> List[Event]:
        """Newest ``limit`` events of ``category``, newest first. Raises StorageError."""
        page = self.normalize_limit(limit)
        rows = await call_store(
            self._store.latest,
            category.value,
            page,
            operation="query",
            path=category.value,
            timeout=self._timeout,
        )
        return [Event.from_record(category, key, record) for key, record in rows[:page]]
