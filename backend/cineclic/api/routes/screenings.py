"""
Screening endpoints with Redis caching on the listing.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cineclic.core.security import get_current_user_id
from cineclic.core.logging import get_logger
from cineclic.db.session import get_db
from cineclic.schemas.room import LayoutResponse
from cineclic.schemas.screening import ScreeningCreate, ScreeningResponse, ScreeningListResponse
from cineclic.services.cache_service import (
    get_cached_screenings,
    set_cached_screenings,
    invalidate_screening_cache,
)
from cineclic.services.screening_service import (
    create_screening,
    describe_layout,
    get_room,
    get_screening,
    list_screenings,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/screenings", tags=["Screenings"])


@router.post("/", response_model=ScreeningResponse, status_code=status.HTTP_201_CREATED)
async def create_screening_endpoint(
    screening_data: ScreeningCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    screening = await create_screening(db, screening_data)
    await invalidate_screening_cache()
    return screening


@router.get("/", response_model=ScreeningListResponse)
async def list_screenings_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """
    List screenings with pagination.
    Results are cached in Redis for 5 minutes and invalidated when a screening is created.
    """
    cached = await get_cached_screenings(page, page_size, upcoming_only)
    if cached:
        logger.info("screenings_list_cache_hit", page=page)
        cached["cached"] = True
        return ScreeningListResponse(**cached)

    screenings, total = await list_screenings(db, page, page_size, upcoming_only)

    response_data = {
        "screenings": [ScreeningResponse.model_validate(s).model_dump(mode="json") for s in screenings],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_screenings(page, page_size, upcoming_only, response_data)

    return ScreeningListResponse(**response_data)


@router.get("/{screening_id}", response_model=ScreeningResponse)
async def get_screening_endpoint(screening_id: int, db: AsyncSession = Depends(get_db)):
    return await get_screening(db, screening_id)


@router.get("/{screening_id}/seats", response_model=LayoutResponse)
async def get_screening_seats(screening_id: int, db: AsyncSession = Depends(get_db)):
    """Seat map for a screening: the live layout of its room."""
    screening = await get_screening(db, screening_id)
    room = await get_room(db, screening.room_id)
    return describe_layout(room)
