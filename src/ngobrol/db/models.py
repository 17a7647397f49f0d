"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table.

Key concepts:
- UUID primary keys (generic Uuid type: native on PostgreSQL, CHAR(32) elsewhere)
- Named unique constraints. Stores translate an IntegrityError into a
  domain error by matching the constraint name, so names here are part of
  the contract.
- ON DELETE CASCADE on memberships: deleting a room removes its members
  in the same statement.
- Timestamps are set client-side so they're populated right after flush.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


# Constraint names matched by the stores' conflict translation
UQ_USERS_EMAIL = "uq_users_email"
UQ_USERS_USERNAME = "uq_users_username"
UQ_ROOMS_NAME = "uq_rooms_name_lower"
UQ_ROOM_MEMBERS = "uq_room_members_room_user"


class User(Base):
    """A registered account.

    Learn: `is_active` is a soft-disable flag. Inactive users can't log in
    and their still-valid tokens stop resolving.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name=UQ_USERS_EMAIL),
        UniqueConstraint("username", name=UQ_USERS_USERNAME),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="offline"
    )  # online, offline, away, busy
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Room(Base):
    """A chat room. Names are unique regardless of case."""

    __tablename__ = "rooms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    visibility: Mapped[str] = mapped_column(
        String(10), nullable=False, default="public"
    )  # public, private
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    max_members: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class RoomMember(Base):
    """Room membership — links users to rooms with a role.

    Learn: Many-to-many with a role attribute (owner, admin, moderator,
    member). Exactly one owner per room, created alongside the room.
    """

    __tablename__ = "room_members"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name=UQ_ROOM_MEMBERS),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    room_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship()


# Functional index: enforces case-insensitive uniqueness of room names
Index(UQ_ROOMS_NAME, func.lower(Room.name), unique=True)
