"""Room and membership persistence."""

import uuid
from typing import Optional

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from ngobrol.auth.roles import Role
from ngobrol.db.conflicts import room_conflict
from ngobrol.db.models import Room, RoomMember
from ngobrol.db.user_store import apply_patch
from ngobrol.errors import AppError, ErrorCode
from ngobrol.schemas.room import RoomCreate, RoomUpdate, Visibility


def _member_count():
    """Correlated subquery: number of members of the outer Room row."""
    return (
        select(func.count(RoomMember.id))
        .where(RoomMember.room_id == Room.id)
        .correlate(Room)
        .scalar_subquery()
    )


def _accessible_to(user_id: uuid.UUID):
    """Public rooms, plus private rooms the user belongs to."""
    membership = exists().where(
        RoomMember.room_id == Room.id, RoomMember.user_id == user_id
    )
    return or_(Room.visibility == Visibility.PUBLIC.value, membership)


class RoomStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: RoomCreate, owner_id: uuid.UUID) -> Room:
        room = Room(
            name=data.name,
            description=data.description,
            visibility=Visibility(data.visibility).value,
            owner_id=owner_id,
            max_members=data.max_members,
        )
        self.db.add(room)
        await self._flush()
        return room

    async def find_by_id(self, room_id: uuid.UUID) -> Optional[Room]:
        return await self.db.get(Room, room_id)

    async def list_rooms(
        self, user_id: uuid.UUID, offset: int, limit: int
    ) -> list[tuple[Room, int]]:
        """Rooms visible to `user_id`, newest first, with member counts."""
        result = await self.db.execute(
            select(Room, _member_count().label("member_count"))
            .where(_accessible_to(user_id))
            .order_by(Room.created_at.desc(), Room.id)
            .offset(offset)
            .limit(limit)
        )
        return [(room, count) for room, count in result.all()]

    async def count_accessible(self, user_id: uuid.UUID) -> int:
        count = await self.db.scalar(
            select(func.count(Room.id)).where(_accessible_to(user_id))
        )
        return count or 0

    async def update(self, room_id: uuid.UUID, patch: RoomUpdate) -> Room:
        room = await self.find_by_id(room_id)
        if not room:
            raise AppError(ErrorCode.ROOM_NOT_FOUND)
        changes = patch.changes()
        if changes:
            apply_patch(room, changes)
            await self._flush()
        return room

    async def delete(self, room_id: uuid.UUID) -> None:
        """Delete a room. Memberships go with it (ON DELETE CASCADE)."""
        result = await self.db.execute(delete(Room).where(Room.id == room_id))
        if result.rowcount == 0:
            raise AppError(ErrorCode.ROOM_NOT_FOUND)

    async def add_member(
        self, room_id: uuid.UUID, user_id: uuid.UUID, role: Role = Role.MEMBER
    ) -> RoomMember:
        member = RoomMember(room_id=room_id, user_id=user_id, role=Role(role).value)
        self.db.add(member)
        await self._flush()
        return member

    async def remove_member(self, room_id: uuid.UUID, user_id: uuid.UUID) -> None:
        result = await self.db.execute(
            delete(RoomMember).where(
                RoomMember.room_id == room_id, RoomMember.user_id == user_id
            )
        )
        if result.rowcount == 0:
            raise AppError(ErrorCode.NOT_MEMBER)

    async def get_members(self, room_id: uuid.UUID) -> list[RoomMember]:
        result = await self.db.execute(
            select(RoomMember)
            .where(RoomMember.room_id == room_id)
            .options(joinedload(RoomMember.user))
            .execution_options(populate_existing=True)
            .order_by(RoomMember.joined_at, RoomMember.id)
        )
        return list(result.scalars().all())

    async def get_member(
        self, room_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[RoomMember]:
        result = await self.db.execute(
            select(RoomMember)
            .where(RoomMember.room_id == room_id, RoomMember.user_id == user_id)
            .options(joinedload(RoomMember.user))
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def count_members(self, room_id: uuid.UUID) -> int:
        count = await self.db.scalar(
            select(func.count(RoomMember.id)).where(RoomMember.room_id == room_id)
        )
        return count or 0

    async def is_member(self, room_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return await self.get_user_role(room_id, user_id) is not None

    async def get_user_role(
        self, room_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[Role]:
        role = await self.db.scalar(
            select(RoomMember.role).where(
                RoomMember.room_id == room_id, RoomMember.user_id == user_id
            )
        )
        return Role(role) if role else None

    async def name_exists(
        self, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> bool:
        """Case-insensitive name check, optionally ignoring one room."""
        clause = exists().where(func.lower(Room.name) == name.lower())
        if exclude_id is not None:
            clause = exists().where(
                func.lower(Room.name) == name.lower(), Room.id != exclude_id
            )
        return bool(await self.db.scalar(select(clause)))

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            conflict = room_conflict(e)
            if conflict is None:
                raise
            raise conflict from e
