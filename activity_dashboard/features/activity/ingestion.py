"""
activity_dashboard/features/activity/ingestion.py

Single write path: validate -> stamp receivedAt -> append to log -> bump counters.

The two writes are not transactional. A crash between them leaves the event
logged without its counter contribution; producers are fire-and-forget and
nothing here deduplicates retries.
"""

from typing import Any, Dict, Mapping, Tuple

from pydantic import AliasChoices, BaseModel, ValidationError as PydanticValidationError

from activity_dashboard.core.errors import ValidationError
from activity_dashboard.core.logging import log_event
from activity_dashboard.features.activity.clock import Clock, day_key, epoch_millis, utc_now
from activity_dashboard.features.activity.counter_store import CounterStore
from activity_dashboard.features.activity.event_store import EventStore
from activity_dashboard.features.activity.models import StreamSpec

# Stamped by the server; whatever the producer sent is discarded unread
SERVER_FIELDS = frozenset({"receivedAt", "received_at"})


def _field_aliases(model, name: str) -> Tuple[str, ...]:
    alias = model.model_fields[name].validation_alias
    if isinstance(alias, AliasChoices):
        return tuple(c for c in alias.choices if isinstance(c, str))
    if isinstance(alias, str):
        return (alias, name)
    return (name,)


def _first_present(raw: Mapping[str, Any], names: Tuple[str, ...]) -> Any:
    for name in names:
        if raw.get(name) is not None:
            return raw[name]
    return None


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_event(spec: StreamSpec, raw: Any) -> BaseModel:
    """
    Check a raw payload and build the stream's event model.

    Raises:
        ValidationError naming the missing or invalid field
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Event body must be a JSON object")

    entity_id = _first_present(raw, _field_aliases(spec.event_model, "entity_id"))
    if _is_blank(entity_id):
        raise ValidationError(f"Missing {spec.entity_field}")

    action = raw.get("action")
    if _is_blank(action):
        raise ValidationError("Missing action")

    if spec.allowed_actions is not None and action not in spec.allowed_actions:
        raise ValidationError(f"Invalid action type: {action}")

    try:
        payload = {k: v for k, v in raw.items() if k not in SERVER_FIELDS}
        return spec.event_model.model_validate(payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise ValidationError(f"Invalid field {loc}: {first.get('msg', 'invalid value')}")


class IngestionService:
    """Accepts producer events for every configured stream."""

    def __init__(
        self,
        streams: Dict[str, StreamSpec],
        event_stores: Dict[str, EventStore],
        counters: CounterStore,
        tz_name: str = "UTC",
        clock: Clock = utc_now,
    ):
        self.streams = streams
        self.event_stores = event_stores
        self.counters = counters
        self.tz_name = tz_name
        self.clock = clock

    def spec_for(self, stream: str) -> StreamSpec:
        try:
            return self.streams[stream]
        except KeyError:
            raise ValidationError(f"Unknown stream: {stream}")

    def submit(self, stream: str, raw: Any) -> BaseModel:
        """
        Validate and record one event.

        Returns:
            The stored event, with receivedAt set by the server

        Raises:
            ValidationError: payload rejected, nothing written
            BackendUnavailableError: storage failed (propagated, not retried)
        """
        spec = self.spec_for(stream)
        event = validate_event(spec, raw)

        now = self.clock()
        received_at = epoch_millis(now)
        event = event.model_copy(update={"received_at": received_at})

        self.event_stores[spec.name].append(event)

        occurred_at = event.timestamp if event.timestamp is not None else received_at
        self.counters.increment(
            spec,
            day_key(now, self.tz_name),
            event.entity_id,
            event.action,
            occurred_at,
            event.display_name,
        )

        log_event(
            "info",
            "event.ingested",
            stream=spec.name,
            entity_id=event.entity_id,
            action=event.action,
        )
        return event
