from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
import traceback
from momente.core.exceptions.errors import MomenteError
from momente.core.responses import send_error
from momente.utils.logging import get_logger


def register_exception_handlers(app):
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger = get_logger()
        logger.error(
            f"Unhandled exception for {request.method} {request.url}: {exc}\n"
            f"Traceback: {traceback.format_exc()}\n"
            f"User-Agent: {request.headers.get('user-agent')}"
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=send_error(
                message="Ein unerwarteter Fehler ist aufgetreten.",
                error="Internal error",
                data={"detail": str(exc)},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            ).model_dump(),
        )

    @app.exception_handler(MomenteError)
    async def momente_exception_handler(request: Request, exc: MomenteError):
        logger = get_logger()
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"{exc.error} for {request.method} {request.url}: {exc.message}"
            + (f" ({exc.details})" if exc.details else "")
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=send_error(
                message=exc.message,
                error=exc.error,
                data={"details": exc.details} if exc.details else None,
                status_code=exc.status_code,
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger = get_logger()
        raw_errors = exc.errors()
        logger.warning(
            f"Validation error for {request.method} {request.url}: {raw_errors}"
        )

        friendly_errors = {}
        for error in raw_errors:
            field = ".".join(map(str, error["loc"]))
            if field.startswith("query."):
                field = field.replace("query.", "")
            friendly_errors[field] = error["msg"]

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=send_error(
                message="Ungültige Anfrage",
                error="Validation failed",
                data={"errors": friendly_errors},
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            ).model_dump(),
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
        logger = get_logger()
        logger.warning(f"Rate limit hit for {request.method} {request.url}: {exc.detail}")
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=send_error(
                message="Zu viele Anfragen. Bitte versuchen Sie es später erneut.",
                error="Rate limited",
                data={"limit": exc.detail},
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            ).model_dump(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger = get_logger()
        logger.warning(
            f"HTTP {exc.status_code} for {request.method} {request.url}: {exc.detail}"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=send_error(
                message=exc.detail, status_code=exc.status_code
            ).model_dump(),
        )
