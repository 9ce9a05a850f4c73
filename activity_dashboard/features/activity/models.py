"""
activity_dashboard/features/activity/models.py

Event, counter and snapshot models for the warmup and posts streams.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Type

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class WarmupAction(str, Enum):
    LIKE = "like"
    BOOKMARK = "bookmark"
    SEARCH = "search"
    EXPLORE = "explore"
    VIDEO_WATCH = "video_watch"
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    ERROR = "error"
    SCROLL = "scroll"
    PROFILE_VISIT = "profile_visit"


class PostAction(str, Enum):
    SCHEDULED = "post_scheduled"
    PUBLISHED = "post_published"
    FAILED = "post_failed"


# ---------------------------------------------------------------------------
# Details: named optional fields, unknown keys dropped
# ---------------------------------------------------------------------------

class WarmupDetails(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    query: Optional[str] = None
    url: Optional[str] = None
    tweet_id: Optional[str] = Field(default=None, alias="tweetId")
    author: Optional[str] = None
    duration_seconds: Optional[float] = Field(default=None, alias="durationSeconds")
    count: Optional[int] = None
    error: Optional[str] = None
    message: Optional[str] = None


class PostDetails(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    repost_id: Optional[str] = Field(default=None, alias="repostId")
    content: Optional[str] = None
    tweet_id: Optional[str] = Field(default=None, alias="tweetId")
    original_author: Optional[str] = Field(default=None, alias="originalAuthor")
    scheduled_for: Optional[str] = Field(default=None, alias="scheduledFor")
    error: Optional[str] = None
    media_included: Optional[bool] = Field(default=None, alias="mediaIncluded")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class WarmupEvent(BaseModel):
    """Warmup activity reported by a browser profile."""
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    timestamp: Optional[int] = None
    received_at: Optional[int] = Field(default=None, alias="receivedAt")
    entity_id: str = Field(
        validation_alias=AliasChoices("profileId", "entityId", "entity_id"),
        serialization_alias="profileId",
    )
    action: str
    display_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("username", "displayName", "display_name"),
        serialization_alias="username",
    )
    details: Optional[WarmupDetails] = None


class PostEvent(BaseModel):
    """Scheduled-post lifecycle event reported by a persona worker."""
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True, use_enum_values=True)

    timestamp: Optional[int] = None
    received_at: Optional[int] = Field(default=None, alias="receivedAt")
    entity_id: str = Field(
        validation_alias=AliasChoices("personaId", "persona", "entityId", "entity_id"),
        serialization_alias="personaId",
    )
    action: PostAction
    display_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("handle", "displayName", "display_name"),
        serialization_alias="handle",
    )
    details: Optional[PostDetails] = None


def event_to_wire(event: BaseModel) -> Dict[str, Any]:
    return event.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Stream definitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StreamSpec:
    """Static description of one event/counter namespace."""

    name: str
    events_key: str
    stats_prefix: str
    max_events: int
    categories: Tuple[str, ...]
    # action -> {category: delta}; actions absent here change no count
    deltas: Mapping[str, Mapping[str, int]]
    entity_field: str
    label_field: str
    event_model: Type[BaseModel]
    # None means any non-empty action is accepted
    allowed_actions: Optional[FrozenSet[str]] = None

    def stats_key(self, date: str, entity_id: str) -> str:
        return f"{self.stats_prefix}{date}:{entity_id}"

    def date_pattern(self, date: str) -> str:
        return f"{self.stats_prefix}{date}:*"

    def entity_from_key(self, date: str, key: str) -> str:
        return key[len(f"{self.stats_prefix}{date}:"):]


WARMUP_STREAM = StreamSpec(
    name="warmup",
    events_key="warmup:events",
    stats_prefix="warmup:stats:",
    max_events=500,
    categories=("likes", "bookmarks", "searches", "explores", "videos", "sessions"),
    deltas={
        WarmupAction.LIKE.value: {"likes": 1},
        WarmupAction.BOOKMARK.value: {"bookmarks": 1},
        WarmupAction.SEARCH.value: {"searches": 1},
        WarmupAction.EXPLORE.value: {"explores": 1},
        WarmupAction.VIDEO_WATCH.value: {"videos": 1},
        WarmupAction.SESSION_START.value: {"sessions": 1},
    },
    entity_field="profileId",
    label_field="username",
    event_model=WarmupEvent,
)

POST_STREAM = StreamSpec(
    name="posts",
    events_key="posts:events",
    stats_prefix="posts:stats:",
    max_events=200,
    categories=("scheduled", "posted", "failed"),
    deltas={
        PostAction.SCHEDULED.value: {"scheduled": 1},
        # "scheduled" tracks outstanding posts, so terminal events release one
        PostAction.PUBLISHED.value: {"posted": 1, "scheduled": -1},
        PostAction.FAILED.value: {"failed": 1, "scheduled": -1},
    },
    entity_field="personaId",
    label_field="handle",
    event_model=PostEvent,
    allowed_actions=frozenset(a.value for a in PostAction),
)


def configured_streams(cfg) -> Dict[str, StreamSpec]:
    """Stream table with caps taken from settings."""
    return {
        WARMUP_STREAM.name: replace(WARMUP_STREAM, max_events=cfg.WARMUP_MAX_EVENTS),
        POST_STREAM.name: replace(POST_STREAM, max_events=cfg.POST_MAX_EVENTS),
    }


# ---------------------------------------------------------------------------
# Counter record
# ---------------------------------------------------------------------------

@dataclass
class CounterRecord:
    """Per-entity, per-day aggregate for one stream."""

    counts: Dict[str, int]
    last_activity: Optional[int] = None
    display_name: Optional[str] = None

    @classmethod
    def zeroed(cls, spec: StreamSpec) -> "CounterRecord":
        return cls(counts={c: 0 for c in spec.categories})

    @classmethod
    def from_document(cls, spec: StreamSpec, doc: Mapping[str, Any]) -> "CounterRecord":
        counts = {}
        for category in spec.categories:
            try:
                counts[category] = max(0, int(doc.get(category) or 0))
            except (TypeError, ValueError):
                counts[category] = 0
        return cls(
            counts=counts,
            last_activity=doc.get("lastActivity"),
            display_name=doc.get(spec.label_field) or None,
        )

    def to_document(self, spec: StreamSpec) -> Dict[str, Any]:
        doc: Dict[str, Any] = {c: self.counts.get(c, 0) for c in spec.categories}
        doc["lastActivity"] = self.last_activity
        if self.display_name:
            doc[spec.label_field] = self.display_name
        return doc

    def apply(self, spec: StreamSpec, action: str) -> None:
        for category, delta in spec.deltas.get(action, {}).items():
            self.counts[category] = max(0, self.counts.get(category, 0) + delta)

    def total(self) -> int:
        return sum(self.counts.values())


# ---------------------------------------------------------------------------
# Query snapshot
# ---------------------------------------------------------------------------

class EntitySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity_id: str
    display_name: str
    handle: str
    emoji: str
    counts: Dict[str, int]
    last_activity: Optional[int] = None

    def total(self) -> int:
        return sum(self.counts.values())

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "entityId": self.entity_id,
            "displayName": self.display_name,
            "handle": self.handle,
            "emoji": self.emoji,
        }
        payload.update(self.counts)
        payload["lastActivity"] = self.last_activity
        return payload


class StreamSnapshot(BaseModel):
    """Composed read model served to the dashboard."""
    model_config = ConfigDict(frozen=True)

    stream: str
    date: str
    totals: Dict[str, int]
    entities: List[EntitySummary] = Field(default_factory=list)
    recent_events: List[Dict[str, Any]] = Field(default_factory=list)

    def as_payload(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "totals": dict(self.totals),
            "entities": [e.as_payload() for e in self.entities],
            "recentEvents": list(self.recent_events),
        }
