"""
activity_dashboard/features/activity/counter_store.py

Per-entity, per-day counters keyed as {stream}:stats:{date}:{entityId}.

Each record is a flat JSON document written with a 7-day expiry. Updates are
read-modify-write under WATCH: if another writer touches the key between the
read and the EXEC, the transaction aborts and the update is recomputed from
the fresh value.
"""

import json
import logging
from typing import Dict, List, Optional

from redis import Redis
from redis.exceptions import WatchError

from activity_dashboard.core.kv_store import backend_errors
from activity_dashboard.core.logging import log_event
from activity_dashboard.features.activity.event_store import EventStore
from activity_dashboard.features.activity.models import CounterRecord, StreamSpec

logger = logging.getLogger("activity_dashboard")

DEFAULT_TTL_SECONDS = 86400 * 7
MGET_CHUNK = 200


class CounterStore:
    """Daily counter records for all streams."""

    def __init__(self, client: Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS, max_retries: int = 5):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.max_retries = max(1, max_retries)

    def increment(
        self,
        spec: StreamSpec,
        date: str,
        entity_id: str,
        action: str,
        timestamp: Optional[int],
        display_name: Optional[str] = None,
    ) -> Optional[CounterRecord]:
        """
        Apply one event to the entity's record for `date`.

        Args:
            spec: Stream whose delta table applies
            date: Day key (YYYY-MM-DD)
            entity_id: Owning persona/profile
            action: Event action; unknown actions only touch lastActivity
            timestamp: Event time, stored as lastActivity (last write wins)
            display_name: Sticky label, only written when provided

        Returns:
            The record as written, or None if every attempt lost the race
        """
        key = spec.stats_key(date, entity_id)
        with backend_errors("counter_store.increment", spec.name):
            with self.client.pipeline() as pipe:
                for attempt in range(1, self.max_retries + 1):
                    try:
                        pipe.watch(key)
                        record = self._load(spec, pipe.get(key))
                        record.last_activity = timestamp
                        if display_name:
                            record.display_name = display_name
                        record.apply(spec, action)

                        pipe.multi()
                        pipe.set(key, json.dumps(record.to_document(spec)), ex=self.ttl_seconds)
                        pipe.execute()
                        return record
                    except WatchError:
                        logger.debug(
                            "counter.conflict",
                            extra={"stream": spec.name, "entity_id": entity_id, "attempt": attempt},
                        )

        log_event(
            "warning",
            "counter.update_dropped",
            stream=spec.name,
            entity_id=entity_id,
            action=action,
            extra={"attempts": self.max_retries, "key": key},
        )
        return None

    def get(self, spec: StreamSpec, date: str, entity_id: str) -> Optional[CounterRecord]:
        with backend_errors("counter_store.get", spec.name):
            raw = self.client.get(spec.stats_key(date, entity_id))
        if raw is None:
            return None
        return self._load(spec, raw)

    def all_for_date(self, spec: StreamSpec, date: str) -> Dict[str, CounterRecord]:
        """
        Every entity with a record for `date`, as entityId -> record.

        Uses SCAN rather than KEYS. Keys that expire between the scan and the
        read are skipped. No ordering is implied.
        """
        with backend_errors("counter_store.all_for_date", spec.name):
            keys = self._keys_for_date(spec, date)
            values: List[Optional[str]] = []
            for start in range(0, len(keys), MGET_CHUNK):
                values.extend(self.client.mget(keys[start:start + MGET_CHUNK]))

        records: Dict[str, CounterRecord] = {}
        for key, raw in zip(keys, values):
            if raw is None:
                continue
            records[spec.entity_from_key(date, key)] = self._load(spec, raw)
        return records

    def clear(self, spec: StreamSpec, date: str, events: EventStore) -> int:
        """
        Delete every record for `date`, then empty the stream's event log
        through `events`.

        Irreversible. Returns the number of stats keys removed.
        """
        with backend_errors("counter_store.clear", spec.name):
            keys = self._keys_for_date(spec, date)
            removed = int(self.client.delete(*keys)) if keys else 0
        events.clear()

        log_event(
            "warning",
            "stats.cleared",
            stream=spec.name,
            extra={"date": date, "stats_keys": removed},
        )
        return removed

    def _keys_for_date(self, spec: StreamSpec, date: str) -> List[str]:
        keys = []
        for key in self.client.scan_iter(match=spec.date_pattern(date), count=500):
            keys.append(key.decode("utf-8") if isinstance(key, bytes) else key)
        return list(dict.fromkeys(keys))

    def _load(self, spec: StreamSpec, raw) -> CounterRecord:
        if raw is None:
            return CounterRecord.zeroed(spec)
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            doc = json.loads(raw)
        except ValueError:
            logger.warning("counter.unreadable_record", extra={"stream": spec.name})
            return CounterRecord.zeroed(spec)
        if not isinstance(doc, dict):
            return CounterRecord.zeroed(spec)
        return CounterRecord.from_document(spec, doc)
