from contextlib import asynccontextmanager
from fastapi import FastAPI
from momente.core.config import settings
from momente.core.dependencies import get_cache, get_notion_client
from momente.core.logging import setup_early_logging
from momente.services.sync_monitor import SyncMonitor
from momente.utils.logging import get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger = get_logger()
    logger.info(f"Startup: {app.title} v{app.version} starting...")

    monitor = SyncMonitor(get_notion_client(), settings)
    if not settings.notion_configured:
        setup_early_logging().error(
            "NOTION_INTEGRATION_SECRET / NOTION_PAGE_URL missing, event endpoints answer 503"
        )
    elif settings.SYNC_MONITOR_ENABLED:
        monitor.start()
    app.state.sync_monitor = monitor
    yield
    # Shutdown
    await monitor.stop()
    await get_cache().close()
    logger.info("Shutdown: App shutting down...")
