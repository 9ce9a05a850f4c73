# activity_dashboard/conftest.py
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from activity_dashboard.core.config import Settings  # noqa: E402
from activity_dashboard.features.activity.metadata import EntityMetadata  # noqa: E402
from activity_dashboard.features.activity.service import build_services  # noqa: E402
from activity_dashboard.tests.mocks import FakeRedis, FrozenClock  # noqa: E402


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        ENV="test",
        REDIS_URL="redis://localhost:6379/15",
        DASHBOARD_TIMEZONE="UTC",
        WARMUP_MAX_EVENTS=500,
        POST_MAX_EVENTS=200,
        RECENT_EVENTS_LIMIT=50,
        COUNTER_MAX_RETRIES=5,
        ENTITY_METADATA_PATH=None,
    )


@pytest.fixture
def services(fake_redis, test_settings, clock):
    return build_services(fake_redis, test_settings, metadata=EntityMetadata(), clock=clock)


@pytest.fixture
def api_client(fake_redis, test_settings, clock):
    from activity_dashboard.main import create_app

    app = create_app(test_settings, redis_client=fake_redis, metadata=EntityMetadata(), clock=clock)
    with TestClient(app) as client:
        yield client
