import json

import httpx
import pytest

from momente.services.notion import NotionAPIError, NotionClient, extract_page_id


def make_client(handler, **kwargs):
    return NotionClient(
        "secret_test",
        base_url="https://notion.test/v1",
        pagination_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def database(db_id, title):
    return {"object": "database", "id": db_id, "title": [{"plain_text": title}]}


@pytest.mark.parametrize(
    "url, expected",
    [
        (
            "https://www.notion.so/Momente-22dfd1375c6e807d8fa4000cc0b4eda1",
            "22dfd1375c6e807d8fa4000cc0b4eda1",
        ),
        (
            "https://momentmillionaer.notion.site/?v=22dfd1375c6e807d8fa4000cc0b4eda1",
            "22dfd1375c6e807d8fa4000cc0b4eda1",
        ),
        (
            "https://www.notion.so/22dfd137-5c6e-8058-917a-cbbedff172a3",
            "22dfd1375c6e8058917acbbedff172a3",
        ),
        ("https://momentmillionaer.notion.site", None),
    ],
)
def test_extract_page_id(url, expected):
    assert extract_page_id(url) == expected


def test_extract_page_id_rejects_unknown_urls():
    with pytest.raises(ValueError):
        extract_page_id("https://example.com/calendar")


async def test_query_database_follows_cursors():
    bodies = []

    def handler(request):
        body = json.loads(request.content)
        bodies.append(body)
        if "start_cursor" not in body:
            return httpx.Response(
                200,
                json={
                    "results": [{"id": "p1"}, {"id": "p2"}],
                    "has_more": True,
                    "next_cursor": "cursor-2",
                },
            )
        return httpx.Response(
            200, json={"results": [{"id": "p3"}], "has_more": False, "next_cursor": None}
        )

    client = make_client(handler)
    pages = await client.query_database(
        "db-1", sorts=[{"property": "Datum", "direction": "ascending"}]
    )

    assert [page["id"] for page in pages] == ["p1", "p2", "p3"]
    assert bodies[1]["start_cursor"] == "cursor-2"
    assert bodies[0]["sorts"] == [{"property": "Datum", "direction": "ascending"}]
    assert bodies[0]["page_size"] == 100


async def test_requests_carry_auth_and_version_headers():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["version"] = request.headers["Notion-Version"]
        seen["path"] = request.url.path
        return httpx.Response(200, json={"object": "page", "id": "org-1"})

    await make_client(handler).retrieve_page("org-1")

    assert seen == {
        "auth": "Bearer secret_test",
        "version": "2022-06-28",
        "path": "/v1/pages/org-1",
    }


async def test_rate_limit_response_raises_classified_error():
    def handler(request):
        return httpx.Response(
            429,
            json={
                "object": "error",
                "status": 429,
                "code": "rate_limited",
                "message": "You have been rate limited.",
            },
        )

    with pytest.raises(NotionAPIError) as exc_info:
        await make_client(handler).retrieve_database("db-1")

    assert exc_info.value.is_rate_limited
    assert exc_info.value.status_code == 429
    assert exc_info.value.message == "You have been rate limited."


async def test_error_without_json_body():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(NotionAPIError) as exc_info:
        await make_client(handler).retrieve_database("db-1")

    assert exc_info.value.code == "unknown"
    assert exc_info.value.status_code == 502
    assert not exc_info.value.is_rate_limited


async def test_transport_failure_becomes_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NotionAPIError) as exc_info:
        await make_client(handler).retrieve_page("p1")

    assert exc_info.value.code == "network_error"
    assert exc_info.value.status_code is None


async def test_find_database_matches_title_substring():
    def handler(request):
        assert json.loads(request.content)["query"] == "Momente"
        return httpx.Response(
            200,
            json={
                "results": [
                    database("db-old", "Archiv"),
                    database("db-momente", "Alle MOMENTE 2025"),
                ],
                "has_more": False,
            },
        )

    found = await make_client(handler).find_database("Momente")

    assert found["id"] == "db-momente"


async def test_find_database_falls_back_to_child_databases():
    def handler(request):
        if request.url.path == "/v1/search":
            return httpx.Response(200, json={"results": [], "has_more": False})
        if request.url.path == "/v1/blocks/page-1/children":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"id": "blk-1", "type": "paragraph"},
                        {"id": "db-child", "type": "child_database"},
                    ],
                    "has_more": False,
                },
            )
        if request.url.path == "/v1/databases/db-child":
            return httpx.Response(200, json=database("db-child", "Momente"))
        return httpx.Response(404, json={"code": "object_not_found", "message": "nope"})

    client = make_client(handler)

    assert (await client.find_database("Momente", page_id="page-1"))["id"] == "db-child"
    assert await client.find_database("Momente") is None


async def test_success_status_with_html_body_raises_invalid_json():
    def handler(request):
        return httpx.Response(200, text="<html>Wartung</html>")

    with pytest.raises(NotionAPIError) as exc_info:
        await make_client(handler).retrieve_database("db-1")

    assert exc_info.value.code == "invalid_json"
    assert exc_info.value.status_code == 200
    assert not exc_info.value.is_rate_limited
