import os

os.environ["NOTION_INTEGRATION_SECRET"] = "secret_test_integration"
os.environ["NOTION_PAGE_URL"] = (
    "https://www.notion.so/Momente-22dfd1375c6e807d8fa4000cc0b4eda1"
)
os.environ["CACHE_TYPE"] = "inmemory"
os.environ["SYNC_MONITOR_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from factories import FakeClock, FakeNotion, sample_pages
from main import app
from momente.core.config import settings
from momente.core.dependencies import get_event_service
from momente.services.events import EventService
from momente.utils.caching import MemoryCache


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    return MemoryCache(clock=clock)


@pytest.fixture
def fake_notion():
    return FakeNotion(pages=sample_pages())


@pytest.fixture
def service(memory_cache, fake_notion):
    return EventService(cache=memory_cache, notion=fake_notion, settings=settings)


@pytest.fixture
def unconfigured_settings():
    return settings.model_copy(
        update={"NOTION_INTEGRATION_SECRET": None, "NOTION_PAGE_URL": None}
    )


@pytest.fixture
def client(service):
    """TestClient wired to the in-memory service (no lifespan, no monitor)."""
    app.dependency_overrides[get_event_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
