from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cineclic.core.security import get_current_user_id
from cineclic.db.session import get_db
from cineclic.schemas.screening import MovieCreate, MovieResponse
from cineclic.services.screening_service import create_movie

router = APIRouter(prefix="/movies", tags=["Movies"])


@router.post("/", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
async def create_movie_endpoint(
    movie_data: MovieCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await create_movie(db, movie_data)
