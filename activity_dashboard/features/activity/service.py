"""
Wiring for the activity feature: one backend handle shared by both stores and
both services. Built once by the app factory at startup.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from redis import Redis

from activity_dashboard.core.config import Settings
from activity_dashboard.features.activity.clock import Clock, utc_now
from activity_dashboard.features.activity.counter_store import CounterStore
from activity_dashboard.features.activity.event_store import EventStore
from activity_dashboard.features.activity.ingestion import IngestionService
from activity_dashboard.features.activity.metadata import EntityMetadata
from activity_dashboard.features.activity.models import StreamSpec, configured_streams
from activity_dashboard.features.activity.query import QueryService


@dataclass
class ActivityServices:
    client: Redis
    streams: Dict[str, StreamSpec]
    event_stores: Dict[str, EventStore]
    counters: CounterStore
    ingestion: IngestionService
    query: QueryService

    def clear_today(self, stream: str) -> int:
        """Administrative reset of the current day for one stream."""
        spec = self.query.spec_for(stream)
        return self.counters.clear(spec, self.query.current_day(), self.event_stores[spec.name])


def build_services(
    client: Redis,
    cfg: Settings,
    metadata: Optional[EntityMetadata] = None,
    clock: Clock = utc_now,
) -> ActivityServices:
    streams = configured_streams(cfg)
    event_stores = {name: EventStore(client, spec) for name, spec in streams.items()}
    counters = CounterStore(
        client,
        ttl_seconds=cfg.STATS_TTL_SECONDS,
        max_retries=cfg.COUNTER_MAX_RETRIES,
    )
    if metadata is None:
        metadata = EntityMetadata.from_settings(cfg)

    ingestion = IngestionService(
        streams,
        event_stores,
        counters,
        tz_name=cfg.DASHBOARD_TIMEZONE,
        clock=clock,
    )
    query = QueryService(
        streams,
        event_stores,
        counters,
        metadata,
        recent_limit=cfg.RECENT_EVENTS_LIMIT,
        tz_name=cfg.DASHBOARD_TIMEZONE,
        clock=clock,
    )
    return ActivityServices(
        client=client,
        streams=streams,
        event_stores=event_stores,
        counters=counters,
        ingestion=ingestion,
        query=query,
    )
