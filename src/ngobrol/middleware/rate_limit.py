"""Rate limiting middleware — Redis-based per-minute window.

Learn: Uses a per-minute window counter stored in Redis.
Each IP gets a counter key like "ngobrol:rl:{ip}:{bucket}:{minute}".
Login and register get a stricter limit (10/min) to slow brute-force,
and a rejection there reports RATE_LIMIT_LOGIN_ATTEMPTS instead of the
generic RATE_LIMIT_EXCEEDED.

Gracefully skips rate limiting if Redis is unavailable (e.g., in tests).
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ngobrol import cache
from ngobrol.errors import ErrorCode, error_body

logger = structlog.get_logger()

AUTH_PATHS = ("/api/auth/login", "/api/auth/register")
WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        # Skip rate limiting if Redis was never connected
        try:
            redis = cache.get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path.startswith(AUTH_PATHS)
        rpm = self.auth_rpm if is_auth else self.default_rpm

        window = int(time.time() // WINDOW_SECONDS)
        bucket = "auth" if is_auth else "api"
        key = f"ngobrol:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS * 2)
        except RedisError as e:
            # Redis hiccup — don't block the request
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            code = ErrorCode.LOGIN_ATTEMPTS if is_auth else ErrorCode.RATE_LIMIT_EXCEEDED
            logger.warning("rate_limit.rejected", ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content=error_body(code),
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
