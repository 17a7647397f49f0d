"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database engine).
Middleware, CORS, exception handlers and routers all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from ngobrol import __version__
from ngobrol.api import api_router
from ngobrol.api.errors import register_exception_handlers
from ngobrol.cache import close_redis, init_redis
from ngobrol.config import settings
from ngobrol.db.engine import engine
from ngobrol.middleware.rate_limit import RateLimitMiddleware
from ngobrol.middleware.request_id import RequestIdMiddleware
from ngobrol.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. Redis is optional: without it the rate limiter stands down
    and the health check reports it as disabled.
    """
    logger.info(
        "ngobrol.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    try:
        await init_redis()
        logger.info("ngobrol.redis_connected", url=settings.redis_url)
    except (RedisError, OSError) as e:
        logger.warning("ngobrol.redis_unavailable", error=str(e))

    yield

    logger.info("ngobrol.shutdown")
    await close_redis()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Ngobrol",
        description="Chat backend: accounts, authentication and rooms",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: ngobrol.main:app)
app = create_app()
