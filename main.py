import time
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from momente.api.router import router as api_router
from momente.core.config import settings
from momente.core.exceptions.handlers import register_exception_handlers
from momente.core.lifespan import lifespan
from momente.core.logging import setup_early_logging
from momente.core.middlewares import LogRequestsMiddleware
from momente.core.openapi import custom_openapi
from momente.core.rate_limiting import setup_rate_limiting
from momente.schemas.event import HealthResponse

STARTED_AT = time.monotonic()

# Setup early logging for startup errors
setup_early_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.PROJECT_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "events", "description": "Events, categories and audiences from Notion"},
        {"name": "sync", "description": "Cache refresh and sync diagnostics"},
    ],
)

# Customize OpenAPI schema
app.openapi = lambda: custom_openapi(app)

# Setup rate limiting if enabled
setup_rate_limiting(app)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "X-Cache-Warning"],
)

# Add logging middleware
app.add_middleware(LogRequestsMiddleware)

# Register all exception handlers
register_exception_handlers(app)

# Include API routers
app.include_router(api_router)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    tz = ZoneInfo(settings.TIMEZONE)
    local_now = datetime.now(tz)
    offset_hours = local_now.utcoffset().total_seconds() / 3600
    return HealthResponse(
        message=settings.APP_NAME,
        timestamp=datetime.now(timezone.utc).isoformat(),
        local_time=local_now.strftime("%d.%m.%Y, %H:%M:%S"),
        timezone=f"{settings.TIMEZONE} (GMT{offset_hours:+g})",
        uptime=round(time.monotonic() - STARTED_AT, 3),
    ).model_dump(by_alias=True)
