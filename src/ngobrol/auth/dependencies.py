"""FastAPI auth dependencies.

Learn: `authenticate` is the gateway. It's attached with
`dependencies=[Depends(authenticate)]` at router (or route) level, and
FastAPI resolves those before any endpoint parameter, so the caller's
identity is established before the handler or its services run.

    Authorization header  ->  bearer token  ->  AuthService.verify_token
                          ->  request.state.user_id

Handlers never read the header themselves. They take
`user_id: uuid.UUID = Depends(get_current_user_id)`, which only reads
request.state and fails closed if the gateway didn't populate it.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ngobrol.db.engine import get_db
from ngobrol.errors import AppError, ErrorCode
from ngobrol.services.auth_service import AuthService

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` value."""
    if authorization is None:
        raise AppError(ErrorCode.MISSING_TOKEN)
    if not authorization.startswith(BEARER_PREFIX):
        raise AppError(ErrorCode.INVALID_TOKEN)
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AppError(ErrorCode.INVALID_TOKEN)
    return token


async def authenticate(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> uuid.UUID:
    """Gateway: verify the bearer token and attach the user to the request."""
    token = extract_bearer_token(authorization)
    user = await AuthService(db).verify_token(token)

    request.state.user_id = user.id
    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user.id


def get_current_user_id(request: Request) -> uuid.UUID:
    """Typed accessor for the authenticated user id (401 if absent)."""
    user_id = getattr(request.state, "user_id", None)
    if not isinstance(user_id, uuid.UUID):
        raise AppError(ErrorCode.UNAUTHORIZED)
    return user_id
