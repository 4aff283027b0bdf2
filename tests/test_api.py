import pytest

from factories import NotionStub, rate_limited, sample_pages, server_error
from main import app
from momente.core.config import settings
from momente.core.dependencies import get_event_service
from momente.services.events import EventService


@pytest.fixture
def unconfigured_client(client, memory_cache, fake_notion, unconfigured_settings):
    service = EventService(memory_cache, fake_notion, unconfigured_settings)
    app.dependency_overrides[get_event_service] = lambda: service
    return client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["timezone"].startswith("Europe/Vienna (GMT+")
    assert {"message", "timestamp", "localTime", "uptime"} <= data.keys()
    assert data["uptime"] >= 0


def test_events_miss_then_hit(client, fake_notion):
    response = client.get("/api/events")
    assert response.status_code == 200
    assert response.headers["X-Cache"] == "miss"
    events = response.json()
    assert len(events) == 3
    assert events[1]["notionId"] == "page-2"
    assert events[1]["time"] == "19:30"
    assert events[1]["price"] == "12.50"
    assert events[2]["endDate"] == "2025-01-22"

    response = client.get("/api/events")
    assert response.headers["X-Cache"] == "hit"
    assert "X-Cache-Warning" not in response.headers
    assert fake_notion.query_calls == 1


def test_events_fallback_headers(client, fake_notion, clock):
    client.get("/api/events")
    clock.advance(31 * 60)
    fake_notion.error = rate_limited()

    response = client.get("/api/events")

    assert response.status_code == 200
    assert response.headers["X-Cache"] == "fallback"
    assert response.headers["X-Cache-Warning"] == "rate-limited-fallback"
    assert len(response.json()) == 3


def test_events_not_configured(unconfigured_client):
    response = unconfigured_client.get("/api/events")
    assert response.status_code == 503
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Notion integration not configured"
    assert "NOTION_INTEGRATION_SECRET" in data["message"]


def test_events_database_not_found(client, fake_notion):
    fake_notion.database = None

    response = client.get("/api/events")
    assert response.status_code == 404
    assert response.json()["error"] == "Momente database not found"


def test_events_rate_limited_without_cache(client, fake_notion):
    fake_notion.error = rate_limited()

    response = client.get("/api/events")
    assert response.status_code == 429
    data = response.json()
    assert data["error"] == "Rate limited"
    assert data["status_code"] == 429


def test_events_upstream_error_without_cache(client, fake_notion):
    fake_notion.error = server_error()

    response = client.get("/api/events")
    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Database search failed"
    assert data["data"] == {"details": "Notion is unavailable."}


def test_categories(client):
    response = client.get("/api/categories")
    assert response.status_code == 200
    assert response.json() == ["Kunst", "Musik", "Outdoor", "Theater"]
    assert response.headers["X-Cache"] == "miss"


def test_audiences(client):
    response = client.get("/api/audiences")
    assert response.status_code == 200
    assert response.json() == ["Erwachsene", "Familien", "Kinder"]

    response = client.get("/api/audiences", params={"refresh": "true"})
    assert response.headers["X-Cache"] == "miss"


def test_audiences_never_fail(client, fake_notion):
    fake_notion.error = server_error()

    response = client.get("/api/audiences")
    assert response.status_code == 200
    assert response.json() == []


def test_audiences_unconfigured_returns_empty_list(unconfigured_client):
    response = unconfigured_client.get("/api/audiences")
    assert response.status_code == 200
    assert response.json() == []


def test_sync_then_events_hits_cache(client, fake_notion):
    response = client.post("/api/sync")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["eventCount"] == 3
    assert "timestamp" in data

    response = client.get("/api/events")
    assert response.headers["X-Cache"] == "hit"
    assert fake_notion.query_calls == 1


def test_sync_failure(client, fake_notion):
    fake_notion.error = server_error()

    response = client.post("/api/sync")
    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Sync failed"


def test_search_by_date_range(client):
    response = client.get("/api/events/search", params={"dateFrom": "2025-01-21"})
    assert response.status_code == 200
    assert [e["title"] for e in response.json()] == ["Kunstmarkt"]


def test_search_by_text_and_category(client):
    response = client.get(
        "/api/events/search", params={"q": "theater", "category": "Theater"}
    )
    assert [e["notionId"] for e in response.json()] == ["page-2"]


def test_search_rejects_bad_date(client):
    response = client.get("/api/events/search", params={"dateFrom": "morgen"})
    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "Validation failed"
    assert "dateFrom" in data["data"]["errors"]


def test_sync_check(client):
    response = client.get("/api/sync-check")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["future"] + data["today"] + data["past"] == 3
    assert "lastChecked" in data


def test_unknown_route(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_openapi_documents_cache_headers(client):
    response = client.get("/openapi.json")
    assert response.status_code == 200
    headers = response.json()["paths"]["/api/events"]["get"]["responses"]["200"]["headers"]
    assert set(headers) == {"X-Cache", "X-Cache-Warning"}


def test_maintenance_page_from_notion_serves_cached_data(client, memory_cache, clock):
    stub = NotionStub(sample_pages())
    service = EventService(memory_cache, stub.client(), settings)
    app.dependency_overrides[get_event_service] = lambda: service
    assert client.get("/api/events").status_code == 200
    clock.advance(3600)
    stub.html = True

    response = client.get("/api/events")
    assert response.status_code == 200
    assert response.headers["X-Cache"] == "fallback"
    assert response.headers["X-Cache-Warning"] == "upstream-error-fallback"
    assert len(response.json()) == 3

    response = client.get("/api/audiences")
    assert response.status_code == 200
    assert response.json() == []

    response = client.post("/api/sync")
    assert response.status_code == 500
    assert response.json()["error"] == "Sync failed"
