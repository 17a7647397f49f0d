"""Room API routes.

Learn: Every route here sits behind the gateway (attached at
include_router level in api/__init__.py), so handlers just ask for the
caller's id and hand it to RoomService, which owns every permission check.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ngobrol.auth.dependencies import get_current_user_id
from ngobrol.db.engine import get_db
from ngobrol.schemas.common import Page, PaginationMeta
from ngobrol.schemas.room import (
    MemberRead,
    RoomCreate,
    RoomDetail,
    RoomRead,
    RoomUpdate,
)
from ngobrol.services.room_service import RoomService

router = APIRouter(prefix="/rooms")


def _svc(db: AsyncSession = Depends(get_db)) -> RoomService:
    return RoomService(db)


# ─── Rooms ──────────────────────────────────────────────

@router.get("", response_model=Page[RoomRead])
async def list_rooms(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    """Public rooms plus private rooms the caller belongs to, newest first."""
    items, total = await svc.list_rooms(user_id, page=page, per_page=per_page)
    return Page[RoomRead](
        items=items,
        pagination=PaginationMeta.build(page, per_page, total),
    )


@router.post("", response_model=RoomRead, status_code=201)
async def create_room(
    body: RoomCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    return await svc.create_room(body, owner_id=user_id)


@router.get("/{room_id}", response_model=RoomDetail)
async def get_room(
    room_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    return await svc.get_room(room_id, user_id)


@router.put("/{room_id}", response_model=RoomRead)
async def update_room(
    room_id: uuid.UUID,
    body: RoomUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    return await svc.update_room(room_id, body, user_id)


@router.delete("/{room_id}", status_code=204)
async def delete_room(
    room_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    await svc.delete_room(room_id, user_id)
    return Response(status_code=204)


# ─── Membership ─────────────────────────────────────────

@router.post("/{room_id}/join", response_model=MemberRead, status_code=201)
async def join_room(
    room_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    return await svc.join_room(room_id, user_id)


@router.post("/{room_id}/leave", status_code=204)
async def leave_room(
    room_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    await svc.leave_room(room_id, user_id)
    return Response(status_code=204)


@router.get("/{room_id}/members", response_model=list[MemberRead])
async def list_members(
    room_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    svc: RoomService = Depends(_svc),
):
    return await svc.list_members(room_id, user_id)
