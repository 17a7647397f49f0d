"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in the rooms router
without modifying individual handlers. Health is open; the auth router
mixes open and protected routes and marks the protected ones itself.
"""

from fastapi import APIRouter, Depends

from ngobrol.api.auth import router as auth_router
from ngobrol.api.health import router as health_router
from ngobrol.api.rooms import router as rooms_router
from ngobrol.auth.dependencies import authenticate

# All protected routers require authentication
_auth = [Depends(authenticate)]

api_router = APIRouter(prefix="/api")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(rooms_router, tags=["rooms", "members"], dependencies=_auth)
