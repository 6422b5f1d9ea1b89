"""Fixed-window rate limiting for webhook routes (Redis INCR + EXPIRE).

Key pattern: "ratelimit:{client_ip}:{window_start}". The client IP is taken from the
first X-Forwarded-For hop when present (reverse-proxy aware). Requests over the limit
get a 429 envelope (RateLimitError, code 9001) with a Retry-After header.

Only paths under the configured prefixes are counted; everything else passes through.
"""

import logging
import time

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from config.settings import settings
from src.mp_common.errors import RateLimitError
from src.mp_common.redis_client import get_redis
from src.mp_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        path_prefixes: tuple[str, ...] = ("/api/v1/webhooks",),
        limit: int | None = None,
    ) -> None:
        super().__init__(app)
        self._prefixes = path_prefixes
        self._limit = limit if limit is not None else settings.WEBHOOK_RATE_LIMIT_PER_MINUTE

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not request.url.path.startswith(self._prefixes):
            return await call_next(request)

        now = int(time.time())
        window_start = now - now % _WINDOW_SECONDS
        key = f"ratelimit:{client_ip(request)}:{window_start}"

        redis = await get_redis()
        count = await redis.incr(key)
        if count == 1:
            await redis.expire(key, _WINDOW_SECONDS)
        if count > self._limit:
            logger.warning("Rate limit exceeded for %s on %s", key, request.url.path)
            err = RateLimitError()
            return JSONResponse(
                status_code=err.http_status,
                content=error_response(err.code, err.message, request).model_dump(),
                headers={"Retry-After": str(window_start + _WINDOW_SECONDS - now)},
            )
        return await call_next(request)
