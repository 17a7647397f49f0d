"""Uniqueness-conflict translation.

Learn: Pre-checks like "does this email exist?" race with concurrent
inserts. The unique constraint in the database is the real guard, so
stores catch IntegrityError and map the violated constraint to a domain
error. PostgreSQL (asyncpg) reports the constraint name directly; SQLite
only names the columns in its message, which the same substring match
still recognises.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError

from ngobrol.errors import AppError, ErrorCode

UNIQUE_VIOLATION = "23505"


def constraint_name(exc: IntegrityError) -> str:
    """Best available description of the violated constraint."""
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
    return str(orig)


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        sqlstate = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if sqlstate:
            return sqlstate == UNIQUE_VIOLATION
    return "unique" in str(orig).lower()


def user_conflict(exc: IntegrityError) -> Optional[AppError]:
    """Map a users-table uniqueness violation to EMAIL_EXISTS / USERNAME_EXISTS.

    An unrecognised constraint falls back to EMAIL_EXISTS. Returns None for
    integrity errors that aren't uniqueness violations.
    """
    if not is_unique_violation(exc):
        return None
    name = constraint_name(exc).lower()
    if "email" in name:
        return AppError(ErrorCode.EMAIL_EXISTS)
    if "username" in name:
        return AppError(ErrorCode.USERNAME_EXISTS)
    return AppError(ErrorCode.EMAIL_EXISTS)


def room_conflict(exc: IntegrityError) -> Optional[AppError]:
    """Map a rooms / room_members uniqueness violation."""
    if not is_unique_violation(exc):
        return None
    name = constraint_name(exc).lower()
    if "room_members" in name or "user_id" in name:
        return AppError(ErrorCode.ALREADY_JOINED)
    return AppError(ErrorCode.ROOM_NAME_EXISTS)
