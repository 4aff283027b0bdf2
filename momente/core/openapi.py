from fastapi.openapi.utils import get_openapi
from momente.core.config import settings

CACHE_HEADERS = {
    "X-Cache": {
        "description": "hit, miss or fallback",
        "schema": {"type": "string", "enum": ["hit", "miss", "fallback"]},
    },
    "X-Cache-Warning": {
        "description": "Set when a cached copy is served because Notion failed",
        "schema": {
            "type": "string",
            "enum": ["rate-limited-fallback", "upstream-error-fallback"],
        },
    },
}

CACHED_PATHS = ("/api/events", "/api/events/search", "/api/categories", "/api/audiences")


def custom_openapi(app):
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=settings.APP_NAME,
        version=settings.PROJECT_VERSION,
        description="Momentmillionär events from Notion, served through a fallback cache",
        routes=app.routes,
        tags=app.openapi_tags,
    )
    for path in CACHED_PATHS:
        operation = openapi_schema["paths"].get(path, {}).get("get")
        if operation:
            operation["responses"]["200"]["headers"] = CACHE_HEADERS
    app.openapi_schema = openapi_schema
    return app.openapi_schema
