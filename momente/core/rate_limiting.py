from fastapi import FastAPI
from slowapi import Limiter
from slowapi.util import get_remote_address

from momente.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def setup_rate_limiting(app: FastAPI):
    # RateLimitExceeded is rendered by register_exception_handlers
    app.state.limiter = limiter
