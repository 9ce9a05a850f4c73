"""
activity_dashboard/tests/test_query.py

Tests for snapshot composition (totals, ordering, metadata enrichment).
"""

import pytest

from activity_dashboard.core.errors import BackendUnavailableError
from activity_dashboard.features.activity.metadata import EntityMeta, EntityMetadata
from activity_dashboard.features.activity.service import build_services
from activity_dashboard.tests.mocks import FIXED_DAY, BrokenRedis


def submit_many(services, stream, entity_id, action, times):
    for _ in range(times):
        services.ingestion.submit(stream, {"entityId": entity_id, "action": action})


def test_empty_stream_snapshot(services):
    snapshot = services.query.today("warmup")

    assert snapshot.date == FIXED_DAY
    assert snapshot.totals == {
        "likes": 0, "bookmarks": 0, "searches": 0,
        "explores": 0, "videos": 0, "sessions": 0,
    }
    assert snapshot.entities == []
    assert snapshot.recent_events == []


def test_empty_posts_snapshot_payload(services):
    payload = services.query.today("posts").as_payload()
    assert payload == {
        "date": FIXED_DAY,
        "totals": {"scheduled": 0, "posted": 0, "failed": 0},
        "entities": [],
        "recentEvents": [],
    }


def test_totals_sum_across_entities(services):
    submit_many(services, "warmup", "green", "like", 3)
    submit_many(services, "warmup", "orange", "like", 2)
    submit_many(services, "warmup", "orange", "search", 1)

    snapshot = services.query.today("warmup")
    assert snapshot.totals["likes"] == 5
    assert snapshot.totals["searches"] == 1
    assert snapshot.totals["bookmarks"] == 0


def test_entities_sorted_by_total_activity(services):
    submit_many(services, "posts", "red", "post_scheduled", 1)
    submit_many(services, "posts", "blue", "post_scheduled", 3)
    submit_many(services, "posts", "green", "post_failed", 2)

    snapshot = services.query.today("posts")
    assert [e.entity_id for e in snapshot.entities] == ["blue", "green", "red"]


def test_metadata_enrichment(services):
    services.ingestion.submit("posts", {"personaId": "blue", "action": "post_scheduled"})

    entity = services.query.today("posts").entities[0]
    assert entity.display_name == "Automate Profit"
    assert entity.handle == "@automateprofit"
    assert entity.emoji == "🔵"


def test_stored_label_overrides_metadata_handle(services):
    services.ingestion.submit("posts", {"personaId": "blue", "action": "post_scheduled", "handle": "@renamed"})
    services.ingestion.submit("posts", {"personaId": "blue", "action": "post_published"})

    entity = services.query.today("posts").entities[0]
    assert entity.handle == "@renamed"
    assert entity.display_name == "Automate Profit"


def test_unknown_entity_gets_placeholder(services):
    services.ingestion.submit("warmup", {"profileId": "profile-77", "action": "like"})

    entity = services.query.today("warmup").entities[0]
    assert entity.display_name == "profile-77"
    assert entity.handle == "@profile-77"
    assert entity.emoji == "•"


def test_injected_metadata_table(fake_redis, test_settings, clock):
    metadata = EntityMetadata({"alpha": EntityMeta(handle="@alpha_x", display_name="Alpha", emoji="🅰")})
    services = build_services(fake_redis, test_settings, metadata=metadata, clock=clock)
    services.ingestion.submit("warmup", {"profileId": "alpha", "action": "like"})
    services.ingestion.submit("warmup", {"profileId": "green", "action": "like"})

    by_id = {e.entity_id: e for e in services.query.today("warmup").entities}
    assert by_id["alpha"].display_name == "Alpha"
    # The default persona table is not merged into an injected one
    assert by_id["green"].display_name == "green"


def test_recent_events_newest_first_and_bounded(fake_redis, test_settings, clock):
    cfg = test_settings.model_copy(update={"RECENT_EVENTS_LIMIT": 3})
    services = build_services(fake_redis, cfg, metadata=EntityMetadata(), clock=clock)
    for ts in range(5):
        services.ingestion.submit("warmup", {"profileId": "green", "action": "scroll", "timestamp": ts})

    recent = services.query.today("warmup").recent_events
    assert [e["timestamp"] for e in recent] == [4, 3, 2]
    assert recent[0]["profileId"] == "green"
    assert "receivedAt" in recent[0]


def test_entity_payload_is_flat(services):
    services.ingestion.submit("warmup", {"profileId": "green", "action": "like", "timestamp": 42, "username": "@PassikiAI"})

    entity = services.query.today("warmup").as_payload()["entities"][0]
    assert entity == {
        "entityId": "green",
        "displayName": "Passiki",
        "handle": "@PassikiAI",
        "emoji": "🟢",
        "likes": 1, "bookmarks": 0, "searches": 0,
        "explores": 0, "videos": 0, "sessions": 0,
        "lastActivity": 42,
    }


def test_for_date_reads_single_day(services, clock):
    from datetime import datetime, timezone

    clock.now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
    services.ingestion.submit("warmup", {"profileId": "green", "action": "like"})
    clock.now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    services.ingestion.submit("warmup", {"profileId": "orange", "action": "like"})

    yesterday = services.query.for_date("warmup", "2026-10-18")
    today = services.query.today("warmup")
    assert [e.entity_id for e in yesterday.entities] == ["green"]
    assert [e.entity_id for e in today.entities] == ["orange"]


def test_query_has_no_side_effects(services, fake_redis):
    services.ingestion.submit("warmup", {"profileId": "green", "action": "like"})
    before = dict(fake_redis._data)

    services.query.today("warmup")
    services.query.today("posts")

    assert fake_redis._data == before


def test_clear_then_query_is_empty(services):
    submit_many(services, "warmup", "green", "like", 2)
    submit_many(services, "posts", "blue", "post_scheduled", 1)

    removed = services.clear_today("warmup")

    assert removed == 1
    snapshot = services.query.today("warmup")
    assert snapshot.entities == []
    assert snapshot.recent_events == []
    # Other stream untouched
    assert len(services.query.today("posts").entities) == 1


def test_backend_failure_gives_no_partial_result(test_settings, clock):
    services = build_services(BrokenRedis(), test_settings, metadata=EntityMetadata(), clock=clock)
    with pytest.raises(BackendUnavailableError):
        services.query.today("warmup")
