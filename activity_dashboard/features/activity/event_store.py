"""
activity_dashboard/features/activity/event_store.py

Bounded, append-only log of raw events, one redis list per stream.
Newest entries sit at the head; the tail is trimmed past the stream's cap.
"""

import json
import logging
from typing import Iterable, Iterator

from pydantic import BaseModel, ValidationError as PydanticValidationError
from redis import Redis

from activity_dashboard.core.kv_store import backend_errors
from activity_dashboard.features.activity.models import StreamSpec, event_to_wire

logger = logging.getLogger("activity_dashboard")


class EventStore:
    """
    Recent-event log for a single stream.

    Insertion order is preserved exactly; entries are never re-sorted by
    their producer timestamp.
    """

    def __init__(self, client: Redis, spec: StreamSpec):
        self.client = client
        self.spec = spec

    @property
    def key(self) -> str:
        return self.spec.events_key

    def append(self, event: BaseModel) -> None:
        """
        Push event onto the head of the log and trim the log to its cap.

        LPUSH and LTRIM go out in one MULTI block. Concurrent appenders may
        still briefly overrun the cap until the next trim lands.
        """
        payload = json.dumps(event_to_wire(event), separators=(",", ":"))
        with backend_errors("event_store.append", self.spec.name):
            pipe = self.client.pipeline(transaction=True)
            pipe.lpush(self.key, payload)
            pipe.ltrim(self.key, 0, self.spec.max_events - 1)
            pipe.execute()

    def recent(self, limit: int = 100) -> Iterator[BaseModel]:
        """
        Return up to `limit` most recent events, newest first.

        The list is fetched eagerly (backend errors raise here); entries are
        decoded lazily as the iterator is consumed. Every call is a fresh read.
        """
        if limit <= 0:
            return iter(())
        with backend_errors("event_store.recent", self.spec.name):
            raw_entries = self.client.lrange(self.key, 0, limit - 1)
        return self._decode_all(raw_entries)

    def length(self) -> int:
        with backend_errors("event_store.length", self.spec.name):
            return int(self.client.llen(self.key))

    def clear(self) -> bool:
        """Drop the whole log. Returns True if a log existed."""
        with backend_errors("event_store.clear", self.spec.name):
            return bool(self.client.delete(self.key))

    def _decode_all(self, raw_entries: Iterable) -> Iterator[BaseModel]:
        for raw in raw_entries:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            try:
                yield self.spec.event_model.model_validate(json.loads(raw))
            except (ValueError, PydanticValidationError) as exc:
                logger.warning(
                    "event_store.skip_unreadable",
                    extra={"stream": self.spec.name, "reason": str(exc)[:200]},
                )
