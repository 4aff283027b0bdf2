"""
Async client for the Notion REST API.

Only the handful of endpoints the event service needs: database search,
database retrieve/query, page retrieve and block children.
"""

import asyncio
import re
from typing import Any, Dict, List, Optional

import httpx

from momente.utils.logging import get_logger

logger = get_logger()

MAX_PAGE_DELAY = 2.0

_PAGE_ID_PATTERNS = [
    re.compile(r"([a-f0-9]{32})(?:[?#]|$)", re.IGNORECASE),
    re.compile(
        r"([a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})", re.IGNORECASE
    ),
    re.compile(r"/([a-f0-9]{32})", re.IGNORECASE),
    re.compile(r"v=([a-f0-9]{32})", re.IGNORECASE),
]
_WORKSPACE_URL = re.compile(r"https://([^.]+)\.notion\.site")


class NotionAPIError(Exception):
    def __init__(
        self,
        message: str,
        code: str = "unknown",
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(f"[{code}] {message}")

    @property
    def is_rate_limited(self) -> bool:
        return self.code == "rate_limited" or self.status_code == 429


def extract_page_id(page_url: str) -> Optional[str]:
    """Return the 32-char page id of a Notion URL.

    Bare workspace URLs (``https://<name>.notion.site``) carry no page id
    and yield ``None``; anything else unrecognised raises ``ValueError``.
    """
    for pattern in _PAGE_ID_PATTERNS:
        match = pattern.search(page_url)
        if match:
            return match.group(1).replace("-", "").lower()
    if _WORKSPACE_URL.match(page_url):
        return None
    raise ValueError(f"Failed to extract page ID from URL: {page_url}")


def plain_text(rich_text: Optional[List[Dict[str, Any]]]) -> str:
    return "".join(part.get("plain_text", "") for part in rich_text or [])


def database_title(database: Dict[str, Any]) -> str:
    return plain_text(database.get("title"))


class NotionClient:
    def __init__(
        self,
        token: Optional[str],
        base_url: str = "https://api.notion.com/v1",
        notion_version: str = "2022-06-28",
        timeout: float = 30.0,
        pagination_delay: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.notion_version = notion_version
        self.timeout = timeout
        self.pagination_delay = pagination_delay
        self._transport = transport

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Notion-Version": self.notion_version,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method, url, headers=self._headers, json=json, params=params
                )
        except httpx.HTTPError as exc:
            logger.error(f"Notion request {method} {path} failed: {exc}")
            raise NotionAPIError(str(exc) or type(exc).__name__, code="network_error") from exc

        if response.is_success:
            try:
                return response.json()
            except ValueError as exc:
                logger.error(f"Notion request {method} {path} returned no JSON body")
                raise NotionAPIError(
                    "Notion returned a non-JSON response",
                    code="invalid_json",
                    status_code=response.status_code,
                ) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        raise NotionAPIError(
            body.get("message") or response.text or f"HTTP {response.status_code}",
            code=body.get("code", "unknown"),
            status_code=response.status_code,
        )

    async def search_databases(self, query: str = "") -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        payload: Dict[str, Any] = {
            "filter": {"property": "object", "value": "database"},
            "page_size": 100,
        }
        if query:
            payload["query"] = query
        while True:
            response = await self._request("POST", "/search", json=payload)
            results.extend(response.get("results", []))
            if not response.get("has_more") or not response.get("next_cursor"):
                return results
            payload["start_cursor"] = response["next_cursor"]

    async def list_child_databases(self, page_id: str) -> List[Dict[str, Any]]:
        databases = []
        params: Dict[str, Any] = {"page_size": 100}
        while True:
            response = await self._request(
                "GET", f"/blocks/{page_id}/children", params=params
            )
            for block in response.get("results", []):
                if block.get("type") != "child_database":
                    continue
                try:
                    databases.append(await self.retrieve_database(block["id"]))
                except NotionAPIError as exc:
                    logger.warning(f"Skipping child database {block['id']}: {exc}")
            if not response.get("has_more") or not response.get("next_cursor"):
                return databases
            params["start_cursor"] = response["next_cursor"]

    async def find_database(
        self, name: str, page_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """First database whose title contains ``name`` (case-insensitive)."""
        needle = name.lower()
        results = await self.search_databases(name)
        logger.info(f"Found {len(results)} databases for search '{name}'")
        for database in results:
            if needle in database_title(database).lower():
                return database

        if page_id:
            for database in await self.list_child_databases(page_id):
                if needle in database_title(database).lower():
                    return database
        return None

    async def retrieve_database(self, database_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/databases/{database_id}")

    async def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/pages/{page_id}")

    async def query_database_page(
        self,
        database_id: str,
        start_cursor: Optional[str] = None,
        sorts: Optional[List[Dict[str, Any]]] = None,
        page_size: int = 100,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"page_size": page_size}
        if sorts:
            payload["sorts"] = sorts
        if start_cursor:
            payload["start_cursor"] = start_cursor
        return await self._request(
            "POST", f"/databases/{database_id}/query", json=payload
        )

    async def query_database(
        self,
        database_id: str,
        sorts: Optional[List[Dict[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """All pages of a database, following ``next_cursor`` until done."""
        pages: List[Dict[str, Any]] = []
        cursor = None
        while True:
            batch = await self.query_database_page(
                database_id, start_cursor=cursor, sorts=sorts
            )
            results = batch.get("results", [])
            pages.extend(results)
            has_more = bool(batch.get("has_more") and batch.get("next_cursor"))
            logger.info(
                f"Loaded {len(results)} events (batch), total: {len(pages)}, hasMore: {has_more}"
            )
            if not has_more:
                return pages
            cursor = batch["next_cursor"]

            # back off a little more the further we page, Notion allows ~3 req/s
            if self.pagination_delay:
                delay = self.pagination_delay * 1.5 ** (len(pages) // 100)
                await asyncio.sleep(min(delay, MAX_PAGE_DELAY))
