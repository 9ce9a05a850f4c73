"""
activity_dashboard/features/activity/query.py

Read side: counters for one day + the recent log, composed into a snapshot.
"""

from typing import Dict, List

from activity_dashboard.core.errors import ValidationError
from activity_dashboard.features.activity.clock import Clock, day_key, utc_now
from activity_dashboard.features.activity.counter_store import CounterStore
from activity_dashboard.features.activity.event_store import EventStore
from activity_dashboard.features.activity.metadata import EntityMetadata
from activity_dashboard.features.activity.models import (
    EntitySummary,
    StreamSnapshot,
    StreamSpec,
    event_to_wire,
)


class QueryService:
    """Side-effect-free snapshot builder for the dashboard."""

    def __init__(
        self,
        streams: Dict[str, StreamSpec],
        event_stores: Dict[str, EventStore],
        counters: CounterStore,
        metadata: EntityMetadata,
        recent_limit: int = 50,
        tz_name: str = "UTC",
        clock: Clock = utc_now,
    ):
        self.streams = streams
        self.event_stores = event_stores
        self.counters = counters
        self.metadata = metadata
        self.recent_limit = recent_limit
        self.tz_name = tz_name
        self.clock = clock

    def spec_for(self, stream: str) -> StreamSpec:
        try:
            return self.streams[stream]
        except KeyError:
            raise ValidationError(f"Unknown stream: {stream}")

    def current_day(self) -> str:
        return day_key(self.clock(), self.tz_name)

    def today(self, stream: str) -> StreamSnapshot:
        return self.for_date(stream, self.current_day())

    def for_date(self, stream: str, date: str) -> StreamSnapshot:
        """
        Build the snapshot for a single day key.

        Entities are ordered by the sum of their counts, highest first; ties
        keep the store's enumeration order. Counters and recent events are
        read separately and may not agree with each other.
        """
        spec = self.spec_for(stream)
        records = self.counters.all_for_date(spec, date)
        recent = [event_to_wire(e) for e in self.event_stores[spec.name].recent(self.recent_limit)]

        totals = {category: 0 for category in spec.categories}
        entities: List[EntitySummary] = []
        for entity_id, record in records.items():
            meta = self.metadata.lookup(entity_id)
            entities.append(EntitySummary(
                entity_id=entity_id,
                display_name=meta.display_name,
                handle=record.display_name or meta.handle,
                emoji=meta.emoji,
                counts={c: record.counts.get(c, 0) for c in spec.categories},
                last_activity=record.last_activity,
            ))
            for category in spec.categories:
                totals[category] += record.counts.get(category, 0)

        entities.sort(key=lambda e: e.total(), reverse=True)

        return StreamSnapshot(
            stream=spec.name,
            date=date,
            totals=totals,
            entities=entities,
            recent_events=recent,
        )
