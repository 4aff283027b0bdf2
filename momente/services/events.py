"""
Read-through cache in front of the Notion event database.

Every resource (events, categories, audiences) lives under two cache keys:
a short-lived primary entry and a 24h ``<key>-backup`` entry, both written on
each successful upstream fetch. When Notion fails, the fallback chain
(stale primary, fresh backup, stale backup) is served instead and the
response is flagged as degraded.
"""

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional

from momente.core.exceptions.errors import (
    DatabaseNotFoundError,
    NotionNotConfiguredError,
    RateLimitedError,
    UpstreamError,
)
from momente.services.normalize import (
    AUDIENCE_PROPERTY,
    DEFAULT_ORGANIZER,
    EVENT_SORTS,
    VIENNA,
    guess_organizer,
    organizer_from_page,
    organizer_relation_id,
    page_to_event,
    property_text,
)
from momente.schemas.event import SyncReport
from momente.services.notion import NotionAPIError, NotionClient
from momente.services.sync_monitor import check_events_sync
from momente.utils.caching import CacheBackend
from momente.utils.logging import get_logger

logger = get_logger()

EVENTS_KEY = "events"
CATEGORIES_KEY = "categories"
AUDIENCES_KEY = "audiences"

RATE_LIMITED_WARNING = "rate-limited-fallback"
UPSTREAM_ERROR_WARNING = "upstream-error-fallback"


def backup_key(key: str) -> str:
    return f"{key}-backup"


@dataclass
class CacheResult:
    data: Any
    source: str = "miss"  # hit, miss or fallback
    warning: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.source == "fallback"

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"X-Cache": self.source}
        if self.warning:
            headers["X-Cache-Warning"] = self.warning
        return headers


class OrganizerResolver:
    """Resolves organizer relations, one page lookup per related page."""

    def __init__(self, notion: NotionClient):
        self.notion = notion
        self._names: Dict[str, Optional[str]] = {}

    async def resolve(self, properties: Dict[str, Any]) -> str:
        title = property_text(properties.get("Name"))
        location = property_text(properties.get("Ort"))
        page_id = organizer_relation_id(properties)
        if not page_id:
            return DEFAULT_ORGANIZER

        if page_id not in self._names:
            try:
                page = await self.notion.retrieve_page(page_id)
                self._names[page_id] = organizer_from_page(page) or DEFAULT_ORGANIZER
            except NotionAPIError as exc:
                logger.warning(f"Organizer page {page_id} not accessible: {exc}")
                self._names[page_id] = None

        return self._names[page_id] or guess_organizer(title, location)


class EventService:
    def __init__(self, cache: CacheBackend, notion: NotionClient, settings):
        self.cache = cache
        self.notion = notion
        self.settings = settings
        self._in_flight: Dict[str, asyncio.Future] = {}

    @property
    def backup_ttl(self) -> float:
        return self.settings.BACKUP_CACHE_TTL_HOURS * 3600

    def _ensure_configured(self) -> None:
        if not self.settings.notion_configured:
            logger.warning("NOTION_INTEGRATION_SECRET or NOTION_PAGE_URL not configured")
            raise NotionNotConfiguredError()

    async def _single_flight(
        self, key: str, loader: Callable[[], Awaitable[Any]]
    ) -> Any:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(loader())
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")
        return await asyncio.shield(task)

    async def _store(self, key: str, data: Any, ttl_minutes: int) -> None:
        await self.cache.set(key, data, ttl_minutes * 60)
        await self.cache.set(backup_key(key), data, self.backup_ttl)

    async def _fallback(self, key: str) -> Optional[Any]:
        backup = backup_key(key)
        for read, name in (
            (self.cache.get_stale, key),
            (self.cache.get, backup),
            (self.cache.get_stale, backup),
        ):
            value = await read(name)
            if value is not None:
                return value
        return None

    async def _recover(self, key: str, exc: NotionAPIError) -> CacheResult:
        if exc.is_rate_limited:
            logger.warning(f"Notion rate limited while loading {key}, trying cache fallback")
            warning = RATE_LIMITED_WARNING
        else:
            logger.error(f"Notion error while loading {key}: {exc}, trying cache fallback")
            warning = UPSTREAM_ERROR_WARNING

        fallback = await self._fallback(key)
        if fallback is not None:
            logger.warning(f"Returning cached {key} as fallback ({warning})")
            return CacheResult(fallback, source="fallback", warning=warning)

        if exc.is_rate_limited:
            raise RateLimitedError(details="Notion API rate limit erreicht") from exc
        raise UpstreamError(details=exc.message) from exc

    async def _resolve_database(self) -> Dict[str, Any]:
        name = self.settings.NOTION_DATABASE_NAME
        database = await self.notion.find_database(name, self.settings.notion_page_id)
        if database is None:
            logger.warning(f"{name} database not found in Notion search results")
            raise DatabaseNotFoundError()
        logger.info(f"Found {name} database with ID: {database['id']}")
        return database

    async def _load_events(self) -> List[Dict[str, Any]]:
        database = await self._resolve_database()
        pages = await self.notion.query_database(database["id"], sorts=EVENT_SORTS)

        organizers = OrganizerResolver(self.notion)
        events = []
        for page in pages:
            organizer = await organizers.resolve(page.get("properties") or {})
            event = page_to_event(page, organizer=organizer, tz=VIENNA)
            events.append(event.model_dump(by_alias=True))
        logger.info(f"Successfully loaded {len(events)} events from Notion")
        await self._store(EVENTS_KEY, events, self.settings.EVENTS_CACHE_TTL_MINUTES)
        return events

    async def get_events(self) -> CacheResult:
        self._ensure_configured()

        cached = await self.cache.get(EVENTS_KEY)
        if cached is not None:
            logger.debug("Returning cached events")
            return CacheResult(cached, source="hit")

        try:
            events = await self._single_flight(EVENTS_KEY, self._load_events)
        except NotionAPIError as exc:
            return await self._recover(EVENTS_KEY, exc)

        return CacheResult(events)

    async def get_categories(self) -> CacheResult:
        self._ensure_configured()

        cached = await self.cache.get(CATEGORIES_KEY)
        if cached is not None:
            return CacheResult(cached, source="hit")

        try:
            events = await self.get_events()
        except (RateLimitedError, UpstreamError) as exc:
            fallback = await self._fallback(CATEGORIES_KEY)
            if fallback is None:
                raise
            warning = (
                RATE_LIMITED_WARNING
                if isinstance(exc, RateLimitedError)
                else UPSTREAM_ERROR_WARNING
            )
            logger.warning(f"Returning cached categories as fallback ({warning})")
            return CacheResult(fallback, source="fallback", warning=warning)

        categories = sorted(
            {category for event in events.data for category in event.get("categories", [])}
        )
        if events.degraded:
            return CacheResult(categories, source="fallback", warning=events.warning)

        await self._store(
            CATEGORIES_KEY, categories, self.settings.CATEGORIES_CACHE_TTL_MINUTES
        )
        return CacheResult(categories)

    async def _load_audiences(self) -> List[str]:
        database = await self._resolve_database()
        schema = await self.notion.retrieve_database(database["id"])
        prop = (schema.get("properties") or {}).get(AUDIENCE_PROPERTY) or {}
        options = (prop.get("multi_select") or {}).get("options") or []
        audiences = [option["name"] for option in options if option.get("name")]
        await self._store(AUDIENCES_KEY, audiences, self.settings.AUDIENCES_CACHE_TTL_MINUTES)
        return audiences

    async def get_audiences(self, refresh: bool = False) -> CacheResult:
        """Audience filter options; degrades to an empty list, never raises."""
        if not refresh:
            cached = await self.cache.get(AUDIENCES_KEY)
            if cached is not None:
                return CacheResult(cached, source="hit")

        try:
            self._ensure_configured()
            audiences = await self._single_flight(AUDIENCES_KEY, self._load_audiences)
        except Exception as exc:
            logger.warning(f"Could not load audiences: {exc}")
            fallback = await self._fallback(AUDIENCES_KEY)
            if fallback is not None:
                return CacheResult(fallback, source="fallback", warning=UPSTREAM_ERROR_WARNING)
            return CacheResult([], source="fallback", warning=UPSTREAM_ERROR_WARNING)

        return CacheResult(audiences)

    async def search_events(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> CacheResult:
        result = await self.get_events()
        events = filter_events(result.data, q, category, date_from, date_to)
        return CacheResult(events, source=result.source, warning=result.warning)

    async def sync(self) -> int:
        """Drop every cache entry and fetch events fresh from Notion."""
        logger.info("Manual sync triggered - clearing caches")
        await self.cache.clear()
        result = await self.get_events()
        logger.info(f"Sync completed with {len(result.data)} events ({result.source})")
        return len(result.data)

    async def check_sync(self) -> SyncReport:
        self._ensure_configured()
        report = await check_events_sync(self.notion, self.settings)
        if report is None:
            raise UpstreamError(message="Sync-Prüfung fehlgeschlagen")
        return report


def _as_date(value: Optional[str]) -> Optional[date]:
    try:
        return date.fromisoformat(value) if value else None
    except ValueError:
        return None


def filter_events(
    events: List[Dict[str, Any]],
    q: Optional[str] = None,
    category: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[Dict[str, Any]]:
    term = (q or "").strip().lower()
    wanted = (category or "").strip().lower()
    if wanted == "all":
        wanted = ""

    matches = []
    for event in events:
        if term and not any(
            term in (event.get(field) or "").lower()
            for field in ("title", "description", "location")
        ):
            continue
        if wanted and wanted not in (c.lower() for c in event.get("categories", [])):
            continue
        if date_from or date_to:
            start = _as_date(event.get("date"))
            if start is None:
                continue
            end = _as_date(event.get("endDate")) or start
            if date_from and end < date_from:
                continue
            if date_to and start > date_to:
                continue
        matches.append(event)
    return matches
