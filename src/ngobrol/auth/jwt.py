"""JWT session token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. A session
token is never stored server-side; it stays valid until `exp`.

Claims: sub (user id), iat, exp, email, username. The email and username
are denormalised for display only. Authorization trusts `sub` alone and
re-resolves the user from the database on every request.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ngobrol.config import settings


class TokenError(Exception):
    """Raised when token verification fails."""


class MalformedToken(TokenError):
    """Not a decodable JWT, or required claims are missing."""


class InvalidSignature(TokenError):
    """Signed with a different secret or tampered with."""


class TokenExpired(TokenError):
    """Well-formed and authentic, but past its `exp`."""


@dataclass(frozen=True)
class Claims:
    sub: str
    iat: int
    exp: int
    email: str = ""
    username: str = ""

    @property
    def user_id(self) -> uuid.UUID:
        """The subject as a UUID. Raises MalformedToken if it isn't one."""
        try:
            return uuid.UUID(self.sub)
        except (ValueError, TypeError, AttributeError):
            raise MalformedToken("Subject is not a valid user id")


def issue_token(
    user_id: uuid.UUID,
    email: str,
    username: str,
    expires_in: Optional[int] = None,
    secret: Optional[str] = None,
) -> str:
    """Create a signed session token for a user."""
    now = datetime.now(timezone.utc)
    ttl = settings.jwt_expires_in if expires_in is None else expires_in
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
        "email": email,
        "username": username,
    }
    return jwt.encode(
        payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


def verify_token(token: str, secret: Optional[str] = None) -> Claims:
    """Verify and decode a session token.

    Raises TokenExpired, InvalidSignature or MalformedToken.
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired("Token has expired")
    except jwt.InvalidSignatureError:
        raise InvalidSignature("Token signature is invalid")
    except jwt.InvalidTokenError as e:
        raise MalformedToken(f"Invalid token: {e}")

    return Claims(
        sub=payload["sub"],
        iat=int(payload["iat"]),
        exp=int(payload["exp"]),
        email=payload.get("email", ""),
        username=payload.get("username", ""),
    )
