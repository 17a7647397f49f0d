"""Pydantic schemas for rooms and memberships."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ngobrol.auth.roles import Role


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    visibility: Visibility = Visibility.PUBLIC
    max_members: Optional[int] = Field(None, ge=2, le=1000)


class RoomUpdate(BaseModel):
    """Partial room update — only fields present in the payload change.

    description and max_members may be cleared with null; name and
    visibility may not.
    """

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    visibility: Optional[Visibility] = None
    max_members: Optional[int] = Field(None, ge=2, le=1000)

    @model_validator(mode="after")
    def reject_null_required(self):
        for field in ("name", "visibility"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        values = self.model_dump(exclude_unset=True)
        if "visibility" in values:
            values["visibility"] = Visibility(values["visibility"]).value
        return values


class RoomRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    visibility: Visibility
    owner_id: uuid.UUID
    max_members: Optional[int] = None
    member_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_room(cls, room, member_count: int) -> "RoomRead":
        return cls.model_validate(room).model_copy(update={"member_count": member_count})


class MemberRead(BaseModel):
    """A membership joined with the member's public profile."""

    id: uuid.UUID
    room_id: uuid.UUID
    user_id: uuid.UUID
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Role
    status: str
    joined_at: datetime

    @classmethod
    def from_member(cls, member) -> "MemberRead":
        return cls(
            id=member.id,
            room_id=member.room_id,
            user_id=member.user_id,
            username=member.user.username,
            display_name=member.user.display_name,
            avatar_url=member.user.avatar_url,
            role=Role(member.role),
            status=member.user.status,
            joined_at=member.joined_at,
        )


class RoomDetail(BaseModel):
    """Room with its member list and the caller's relation to it."""

    room: RoomRead
    members: list[MemberRead] = []
    is_member: bool
    user_role: Optional[Role] = None
