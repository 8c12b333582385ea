"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from cineclic.api.routes import auth, bookings, movies, rooms, screenings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(movies.router)
api_router.include_router(rooms.router)
api_router.include_router(screenings.router)
api_router.include_router(bookings.router)
