"""User persistence.

Every lookup used for authentication filters on is_active, so a
deactivated account behaves as if it didn't exist. Writes flush
immediately so constraint violations surface here, where they are
translated into EMAIL_EXISTS / USERNAME_EXISTS.
"""

import uuid
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ngobrol.db.conflicts import user_conflict
from ngobrol.db.models import User, utcnow
from ngobrol.errors import AppError, ErrorCode
from ngobrol.schemas.user import Status, UserUpdate


def apply_patch(row, changes: dict) -> None:
    """Copy the present fields of a patch onto an ORM row."""
    for field, value in changes.items():
        setattr(row, field, value)
    row.updated_at = utcnow()


class UserStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        display_name: Optional[str] = None,
    ) -> User:
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            display_name=display_name,
            status=Status.OFFLINE.value,
        )
        self.db.add(user)
        await self._flush()
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email, User.is_active.is_(True))
        )
        return result.scalars().first()

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        return result.scalars().first()

    async def find_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == username, User.is_active.is_(True))
        )
        return result.scalars().first()

    async def update(self, user_id: uuid.UUID, patch: UserUpdate) -> User:
        user = await self._get_active(user_id)
        changes = patch.changes()
        if changes:
            apply_patch(user, changes)
            await self._flush()
        return user

    async def update_status(self, user_id: uuid.UUID, status: Status) -> User:
        user = await self._get_active(user_id)
        apply_patch(user, {"status": Status(status).value})
        await self._flush()
        return user

    async def deactivate(self, user_id: uuid.UUID) -> User:
        user = await self._get_active(user_id)
        apply_patch(user, {"is_active": False, "status": Status.OFFLINE.value})
        await self._flush()
        return user

    async def email_exists(self, email: str) -> bool:
        # Inactive accounts still hold their email
        return bool(await self.db.scalar(select(exists().where(User.email == email))))

    async def username_exists(self, username: str) -> bool:
        return bool(
            await self.db.scalar(select(exists().where(User.username == username)))
        )

    async def _get_active(self, user_id: uuid.UUID) -> User:
        user = await self.find_by_id(user_id)
        if not user:
            raise AppError(ErrorCode.USER_NOT_FOUND)
        return user

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            conflict = user_conflict(e)
            if conflict is None:
                raise
            raise conflict from e
