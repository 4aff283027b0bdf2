from typing import Annotated

from fastapi import Depends

from momente.core.config import settings
from momente.services.events import EventService
from momente.services.notion import NotionClient
from momente.utils.caching import CacheBackend, cache

notion_client = NotionClient(
    token=settings.NOTION_INTEGRATION_SECRET,
    base_url=settings.NOTION_API_URL,
    notion_version=settings.NOTION_VERSION,
    timeout=settings.NOTION_TIMEOUT_SECONDS,
    pagination_delay=settings.NOTION_PAGINATION_DELAY,
)

# One service per process so the single-flight map is shared by all requests
event_service = EventService(cache=cache, notion=notion_client, settings=settings)


def get_cache() -> CacheBackend:
    return cache


def get_notion_client() -> NotionClient:
    return notion_client


def get_event_service() -> EventService:
    return event_service


EventServiceDependency = Annotated[EventService, Depends(get_event_service)]
