from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, status

from momente.core.config import settings
from momente.core.dependencies import EventServiceDependency
from momente.core.exceptions.errors import MomenteError
from momente.core.rate_limiting import limiter
from momente.core.responses import create_json_response, send_error
from momente.schemas.event import SyncReport, SyncResponse
from momente.utils.logging import get_logger

router = APIRouter(tags=["sync"])
logger = get_logger()


@router.post("/sync", response_model=SyncResponse)
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_events(
    request: Request, response: Response, service: EventServiceDependency
):
    """Clear all caches and reload the events from Notion."""
    try:
        event_count = await service.sync()
    except MomenteError as exc:
        logger.error(f"Manual sync failed: {exc.error} ({exc.message})")
        return create_json_response(
            send_error(
                message=exc.message,
                error="Sync failed",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            ).model_dump(),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return SyncResponse(
        event_count=event_count,
        timestamp=datetime.now(timezone.utc).isoformat(),
    ).model_dump(by_alias=True)


@router.get("/sync-check", response_model=SyncReport)
async def sync_check(service: EventServiceDependency):
    report = await service.check_sync()
    return report.model_dump(by_alias=True)
