"""Room service — room lifecycle and role-gated membership changes.

Learn: Every permission check is a single role_at_least() comparison
against the ordered hierarchy owner > admin > moderator > member:

    update_room   at least admin     else AUTH_INSUFFICIENT_PERMISSIONS
    delete_room   owner              else ROOM_OWNER_REQUIRED
    get_room /
    list_members  any role, or the room is public
    join_room     public rooms only, not already a member, not full
    leave_room    anyone but the owner (there is no ownership transfer)

Roles only change through these operations; nobody can promote themselves.
"""

import uuid
from typing import Any, Mapping, Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ngobrol.auth.roles import Role, role_at_least
from ngobrol.db.models import Room
from ngobrol.db.room_store import RoomStore
from ngobrol.errors import AppError, ErrorCode
from ngobrol.schemas.common import validate_input
from ngobrol.schemas.room import (
    MemberRead,
    RoomCreate,
    RoomDetail,
    RoomRead,
    RoomUpdate,
    Visibility,
)

logger = structlog.get_logger()

Payload = Mapping[str, Any]


class RoomService:
    """Business logic for rooms and memberships."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.rooms = RoomStore(db)

    async def role_of(self, room_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Role]:
        return await self.rooms.get_user_role(room_id, user_id)

    # ─── Rooms ──────────────────────────────────────────

    async def create_room(
        self, data: Union[RoomCreate, Payload], owner_id: uuid.UUID
    ) -> RoomRead:
        """Create a room with the caller as its owner, in one transaction."""
        body = validate_input(RoomCreate, data)
        if await self.rooms.name_exists(body.name):
            raise AppError(ErrorCode.ROOM_NAME_EXISTS)

        room = await self.rooms.create(body, owner_id)
        await self.rooms.add_member(room.id, owner_id, Role.OWNER)
        await self.db.commit()

        logger.info("room.created", room_id=str(room.id), owner_id=str(owner_id))
        return RoomRead.from_room(room, member_count=1)

    async def list_rooms(
        self, user_id: uuid.UUID, page: int = 1, per_page: int = 20
    ) -> tuple[list[RoomRead], int]:
        offset = (page - 1) * per_page
        rows = await self.rooms.list_rooms(user_id, offset=offset, limit=per_page)
        total = await self.rooms.count_accessible(user_id)
        return [RoomRead.from_room(room, count) for room, count in rows], total

    async def get_room(self, room_id: uuid.UUID, user_id: uuid.UUID) -> RoomDetail:
        room = await self._get(room_id)
        role = await self.role_of(room_id, user_id)
        self._check_visible(room, role)

        members = await self.rooms.get_members(room_id)
        return RoomDetail(
            room=RoomRead.from_room(room, member_count=len(members)),
            members=[MemberRead.from_member(m) for m in members],
            is_member=role is not None,
            user_role=role,
        )

    async def update_room(
        self,
        room_id: uuid.UUID,
        data: Union[RoomUpdate, Payload],
        user_id: uuid.UUID,
    ) -> RoomRead:
        patch = validate_input(RoomUpdate, data)
        await self._get(room_id)

        role = await self.role_of(room_id, user_id)
        if not role_at_least(role, Role.ADMIN):
            raise AppError(ErrorCode.INSUFFICIENT_PERMISSIONS)

        if patch.name is not None and await self.rooms.name_exists(
            patch.name, exclude_id=room_id
        ):
            raise AppError(ErrorCode.ROOM_NAME_EXISTS)

        room = await self.rooms.update(room_id, patch)
        member_count = await self.rooms.count_members(room_id)
        await self.db.commit()

        logger.info("room.updated", room_id=str(room_id), user_id=str(user_id))
        return RoomRead.from_room(room, member_count=member_count)

    async def delete_room(self, room_id: uuid.UUID, user_id: uuid.UUID) -> None:
        await self._get(room_id)

        role = await self.role_of(room_id, user_id)
        if not role_at_least(role, Role.OWNER):
            raise AppError(ErrorCode.OWNER_REQUIRED)

        await self.rooms.delete(room_id)
        await self.db.commit()
        logger.info("room.deleted", room_id=str(room_id), user_id=str(user_id))

    # ─── Membership ─────────────────────────────────────

    async def join_room(self, room_id: uuid.UUID, user_id: uuid.UUID) -> MemberRead:
        """Join a public room as a plain member.

        Checks run in order: already a member, capacity, visibility.
        Private rooms have no self-join path.
        """
        room = await self._get(room_id)

        if await self.rooms.is_member(room_id, user_id):
            raise AppError(ErrorCode.ALREADY_JOINED)

        if room.max_members is not None:
            if await self.rooms.count_members(room_id) >= room.max_members:
                raise AppError(ErrorCode.ROOM_FULL)

        if room.visibility == Visibility.PRIVATE.value:
            raise AppError(ErrorCode.PRIVATE_NO_ACCESS)

        await self.rooms.add_member(room_id, user_id, Role.MEMBER)
        await self.db.commit()

        member = await self.rooms.get_member(room_id, user_id)
        if member is None:
            raise AppError(
                ErrorCode.INTERNAL_ERROR, internal="Failed to retrieve member info"
            )
        logger.info("room.joined", room_id=str(room_id), user_id=str(user_id))
        return MemberRead.from_member(member)

    async def leave_room(self, room_id: uuid.UUID, user_id: uuid.UUID) -> None:
        await self._get(room_id)

        role = await self.role_of(room_id, user_id)
        if role_at_least(role, Role.OWNER):
            raise AppError(ErrorCode.OWNER_REQUIRED)

        await self.rooms.remove_member(room_id, user_id)
        await self.db.commit()
        logger.info("room.left", room_id=str(room_id), user_id=str(user_id))

    async def list_members(
        self, room_id: uuid.UUID, user_id: uuid.UUID
    ) -> list[MemberRead]:
        room = await self._get(room_id)
        role = await self.role_of(room_id, user_id)
        self._check_visible(room, role)

        members = await self.rooms.get_members(room_id)
        return [MemberRead.from_member(m) for m in members]

    # ─── Helpers ────────────────────────────────────────

    async def _get(self, room_id: uuid.UUID) -> Room:
        room = await self.rooms.find_by_id(room_id)
        if not room:
            raise AppError(ErrorCode.ROOM_NOT_FOUND)
        return room

    @staticmethod
    def _check_visible(room: Room, role: Optional[Role]) -> None:
        if room.visibility == Visibility.PRIVATE.value and role is None:
            raise AppError(ErrorCode.PRIVATE_NO_ACCESS)
