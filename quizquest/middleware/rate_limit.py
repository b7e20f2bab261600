"""
Rate limiting middleware using slowapi
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import structlog

from quizquest.config import RATE_LIMIT_AI, RATE_LIMIT_ENABLED

logger = structlog.get_logger()

limiter = Limiter(
    key_func=get_remote_address,
    enabled=RATE_LIMIT_ENABLED,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    client = request.client.host if request.client else "unknown"
    logger.warning("rate_limit_exceeded", client_ip=client, path=request.url.path, limit=str(exc.detail))
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}. Please try again later."},
    )


def ai_generation_limit():
    """Rate limit for remote AI generation, which spends the caller's money"""
    return limiter.limit(RATE_LIMIT_AI)


def general_api_limit():
    return limiter.limit("60/minute")
