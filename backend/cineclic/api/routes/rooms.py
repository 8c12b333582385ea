"""
Room endpoints: create a room with an all-available layout, inspect the layout.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cineclic.core.security import get_current_user_id
from cineclic.db.session import get_db
from cineclic.schemas.room import RoomCreate, RoomResponse, LayoutResponse
from cineclic.services.screening_service import create_room, get_room, describe_layout

router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room_endpoint(
    room_data: RoomCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await create_room(db, room_data)


@router.get("/{room_id}/layout", response_model=LayoutResponse)
async def get_room_layout(room_id: int, db: AsyncSession = Depends(get_db)):
    """Current seat states. Never cached: holds and bookings change it constantly."""
    room = await get_room(db, room_id)
    return describe_layout(room)
