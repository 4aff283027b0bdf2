"""
Periodic check of the Notion event database.

Observability only: logs how many events sit in the future, today and in the
past. It never reads or writes the cache.
"""

import asyncio
from datetime import date, datetime, timezone
from typing import Optional

from momente.schemas.event import SyncReport
from momente.services.normalize import (
    EVENT_SORTS,
    VIENNA,
    multi_select_names,
    property_text,
    split_datetime,
)
from momente.services.notion import NotionAPIError, NotionClient
from momente.utils.logging import get_logger

logger = get_logger()


async def check_events_sync(
    notion: NotionClient, settings, today: Optional[date] = None
) -> Optional[SyncReport]:
    logger.info("Checking Notion events sync...")
    if not settings.notion_configured:
        logger.warning("Notion not configured - missing secrets, skipping sync check")
        return None

    try:
        database = await notion.find_database(
            settings.NOTION_DATABASE_NAME, settings.notion_page_id
        )
        if database is None:
            logger.warning(f"{settings.NOTION_DATABASE_NAME} database not found")
            return None
        batch = await notion.query_database_page(database["id"], sorts=EVENT_SORTS)
    except NotionAPIError as exc:
        logger.error(f"Error checking Notion events sync: {exc}")
        return None

    pages = batch.get("results", [])
    today = today or datetime.now(VIENNA).date()
    future = today_count = past = 0
    for page in pages:
        start = ((page["properties"].get("Datum") or {}).get("date") or {}).get("start")
        event_day, _ = split_datetime(start, VIENNA)
        if not event_day:
            continue
        try:
            event_date = date.fromisoformat(event_day)
        except ValueError:
            continue
        if event_date > today:
            future += 1
        elif event_date < today:
            past += 1
        else:
            today_count += 1

    logger.info(f"Found {len(pages)} events in Notion database")
    logger.info(
        f"Events breakdown: future={future}, today={today_count}, past={past}"
    )
    for index, page in enumerate(pages[:5], start=1):
        properties = page["properties"]
        categories = ", ".join(multi_select_names(properties.get("Kategorie")))
        start = ((properties.get("Datum") or {}).get("date") or {}).get("start")
        logger.info(
            f"  {index}. {property_text(properties.get('Name')) or 'Untitled'} | "
            f"{start or 'No date'} | {categories or 'No category'} | {page['id']}"
        )

    return SyncReport(
        total=len(pages),
        future=future,
        today=today_count,
        past=past,
        last_checked=datetime.now(timezone.utc).isoformat(),
    )


class SyncMonitor:
    def __init__(self, notion: NotionClient, settings):
        self.notion = notion
        self.settings = settings
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        logger.info(
            f"Starting sync monitor, checking every {self.settings.SYNC_MONITOR_INTERVAL_HOURS}h"
        )
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        interval = self.settings.SYNC_MONITOR_INTERVAL_HOURS * 3600
        while True:
            try:
                await check_events_sync(self.notion, self.settings)
            except Exception:
                logger.exception("Sync monitor check failed")
            await asyncio.sleep(interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped sync monitoring")
