"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and dependencies (Postgres, Redis) are reachable. Redis is optional,
so only a database failure marks the service unhealthy.
"""

from fastapi import APIRouter
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ngobrol import __version__, cache
from ngobrol.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check database
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError) as e:
        checks["database"] = f"error: {e}"

    # Check Redis
    try:
        await cache.get_redis().ping()
        checks["redis"] = "ok"
    except RuntimeError:
        checks["redis"] = "disabled"
    except (RedisError, OSError) as e:
        checks["redis"] = f"error: {e}"

    if checks["database"] != "ok":
        status = "unhealthy"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "healthy"

    return {"status": status, **checks}
