"""Password hashing utilities.

Learn: Uses Argon2id, a memory-hard algorithm, with a random salt per
hash, so hashing the same password twice never yields the same string.
Cost parameters come from settings so tests can run cheaply.

Legacy bcrypt hashes ($2b$...) are still verified for accounts created
before the switch, and auto-upgraded to Argon2id on successful login.
"""

import bcrypt
import structlog
from argon2 import PasswordHasher, Type
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from ngobrol.config import settings
from ngobrol.errors import AppError, ErrorCode

logger = structlog.get_logger()

_hasher = PasswordHasher(
    time_cost=settings.argon2_time_cost,
    memory_cost=settings.argon2_memory_cost,
    parallelism=settings.argon2_parallelism,
    type=Type.ID,
)


def hash_password(password: str) -> str:
    """Hash a password with Argon2id.

    Any library failure becomes a generic internal error.
    """
    try:
        return _hasher.hash(password)
    except HashingError as e:
        logger.error("password.hash_failed", error=str(e))
        raise AppError(ErrorCode.INTERNAL_ERROR, internal=f"Password hashing failed: {e}")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash.

    Returns False on mismatch. Raises an internal AppError only when the
    stored hash itself is unreadable.
    """
    if _is_legacy_hash(password_hash):
        return _verify_legacy(password, password_hash)
    try:
        return _hasher.verify(password_hash, password)
    except VerificationError:
        return False
    except InvalidHashError as e:
        logger.error("password.invalid_hash", error=str(e))
        raise AppError(ErrorCode.INTERNAL_ERROR, internal=f"Invalid password hash: {e}")


def needs_upgrade(password_hash: str) -> bool:
    """Check if a hash should be re-computed with the current parameters."""
    if _is_legacy_hash(password_hash):
        return True
    try:
        return _hasher.check_needs_rehash(password_hash)
    except (InvalidHashError, ValueError):
        return False


def _is_legacy_hash(password_hash: str) -> bool:
    """Detect bcrypt hashes ($2a$, $2b$, $2y$)."""
    return password_hash.startswith("$2")


def _verify_legacy(password: str, password_hash: str) -> bool:
    """Verify a legacy bcrypt hash (passwords truncated to bcrypt's 72 bytes)."""
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except ValueError as e:
        logger.error("password.invalid_hash", error=str(e), scheme="bcrypt")
        raise AppError(ErrorCode.INTERNAL_ERROR, internal=f"Invalid password hash: {e}")
