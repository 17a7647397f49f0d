"""Auth service — registration, login, logout and token resolution.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the stores. The gateway
dependency uses verify_token() to turn a bearer token into a live user.

Uniqueness is checked twice: a friendly pre-check (exists queries) and
the database constraint at insert time. Only the second is authoritative;
the store translates a violation into the same error the pre-check gives.
"""

import uuid
from typing import Any, Mapping, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ngobrol.auth.jwt import TokenError, TokenExpired, issue_token
from ngobrol.auth.jwt import verify_token as decode_token
from ngobrol.auth.password import hash_password, needs_upgrade, verify_password
from ngobrol.db.models import User
from ngobrol.db.user_store import UserStore
from ngobrol.errors import AppError, ErrorCode
from ngobrol.schemas.common import validate_input
from ngobrol.schemas.user import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    Status,
    UserRead,
    UserUpdate,
)

logger = structlog.get_logger()

Payload = Mapping[str, Any]


class AuthService:
    """Business logic for accounts and sessions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserStore(db)

    # ─── Register / login ───────────────────────────────

    async def register(self, data: Union[RegisterRequest, Payload]) -> AuthResponse:
        """Create an account and return it with a fresh token."""
        body = validate_input(RegisterRequest, data)

        if await self.users.email_exists(body.email):
            raise AppError(ErrorCode.EMAIL_EXISTS)
        if await self.users.username_exists(body.username):
            raise AppError(ErrorCode.USERNAME_EXISTS)

        user = await self.users.create(
            username=body.username,
            email=body.email,
            password_hash=hash_password(body.password),
            display_name=body.display_name,
        )
        await self.db.commit()

        logger.info("auth.registered", user_id=str(user.id), username=user.username)
        return self._session(user)

    async def login(self, data: Union[LoginRequest, Payload]) -> AuthResponse:
        """Exchange email + password for a token.

        Learn: unknown email and wrong password give the same error so the
        endpoint can't be used to probe which accounts exist.
        """
        body = validate_input(LoginRequest, data)

        user = await self.users.find_by_email(body.email)
        if not user or not verify_password(body.password, user.password_hash):
            logger.warning("auth.login_failed")
            raise AppError(ErrorCode.INVALID_CREDENTIALS)

        if needs_upgrade(user.password_hash):
            user.password_hash = hash_password(body.password)
            logger.info("auth.password_rehashed", user_id=str(user.id))

        await self.users.update_status(user.id, Status.ONLINE)
        await self.db.commit()

        logger.info("auth.login", user_id=str(user.id))
        return self._session(user)

    # ─── Current user ───────────────────────────────────

    async def get_me(self, user_id: uuid.UUID) -> UserRead:
        user = await self.users.find_by_id(user_id)
        if not user:
            raise AppError(ErrorCode.USER_NOT_FOUND)
        return UserRead.model_validate(user)

    async def update_profile(
        self, user_id: uuid.UUID, data: Union[UserUpdate, Payload]
    ) -> UserRead:
        """Apply a partial profile update (username, display name, avatar, status)."""
        patch = validate_input(UserUpdate, data)
        if patch.username is not None:
            current = await self.users.find_by_id(user_id)
            if current and current.username != patch.username:
                if await self.users.username_exists(patch.username):
                    raise AppError(ErrorCode.USERNAME_EXISTS)

        user = await self.users.update(user_id, patch)
        await self.db.commit()
        return UserRead.model_validate(user)

    async def logout(self, user_id: uuid.UUID) -> None:
        """Mark the user offline. The token itself stays valid until it expires."""
        await self.users.update_status(user_id, Status.OFFLINE)
        await self.db.commit()
        logger.info("auth.logout", user_id=str(user_id))

    # ─── Token resolution ───────────────────────────────

    async def verify_token(self, token: str) -> User:
        """Resolve a bearer token to an active user.

        Only the subject claim is trusted; the user is re-read so profile
        changes and deactivation since issuance take effect immediately.
        """
        try:
            claims = decode_token(token)
            user_id = claims.user_id
        except TokenExpired:
            raise AppError(ErrorCode.TOKEN_EXPIRED)
        except TokenError as e:
            logger.warning("auth.invalid_token", reason=str(e))
            raise AppError(ErrorCode.INVALID_TOKEN)

        user = await self.users.find_by_id(user_id)
        if not user:
            logger.warning("auth.token_user_missing", user_id=str(user_id))
            raise AppError(ErrorCode.INVALID_TOKEN)
        return user

    def _session(self, user: User) -> AuthResponse:
        token = issue_token(user.id, user.email, user.username)
        return AuthResponse(user=UserRead.model_validate(user), token=token)
