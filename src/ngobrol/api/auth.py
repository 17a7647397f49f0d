"""Auth API — registration, login, profile, logout.

Learn: Routes for account lifecycle:
- POST /auth/register → create an account, returns {user, token}
- POST /auth/login → email/password → {user, token}
- GET /auth/me → current user
- PATCH /auth/me → partial profile update
- POST /auth/logout → mark the user offline

Register and login are open. The other routes carry the gateway
dependency individually since they share this router with the open ones.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ngobrol.auth.dependencies import authenticate, get_current_user_id
from ngobrol.db.engine import get_db
from ngobrol.schemas.user import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserRead,
    UserUpdate,
)
from ngobrol.services.auth_service import AuthService

router = APIRouter(prefix="/auth")

_auth = [Depends(authenticate)]


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new user account."""
    return await svc.register(body)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    return await svc.login(body)


@router.get("/me", response_model=UserRead, dependencies=_auth)
async def get_me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AuthService = Depends(_svc),
):
    return await svc.get_me(user_id)


@router.patch("/me", response_model=UserRead, dependencies=_auth)
async def update_me(
    body: UserUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AuthService = Depends(_svc),
):
    return await svc.update_profile(user_id, body)


@router.post("/logout", response_model=MessageResponse, dependencies=_auth)
async def logout(
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: AuthService = Depends(_svc),
):
    await svc.logout(user_id)
    return MessageResponse(message="Logged out successfully")
