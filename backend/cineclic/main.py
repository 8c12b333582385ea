"""
CineClic Booking API - Main Application Entry Point

A cinema ticketing backend demonstrating:
- Per-room serialized seat reservation (no double booking under concurrency)
- Realtime seat holds over WebSockets with timed expiry
- A background sweep that cancels unpaid bookings before showtime
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cineclic.core.config import get_settings
from cineclic.core.exceptions import register_exception_handlers
from cineclic.core.logging import setup_logging, get_logger
from cineclic.core.metrics import metrics_endpoint
from cineclic.api.router import api_router
from cineclic.api.routes import realtime
from cineclic.api.middleware import RequestLoggingMiddleware
from cineclic.db.session import SessionLocal, engine
from cineclic.realtime.connection_manager import ConnectionManager
from cineclic.services.cache_service import get_redis, close_redis, get_cache_stats
from cineclic.services.notification_service import BookingNotifier, LoggingEmailSender
from cineclic.services.reservation_coordinator import ReservationCoordinator

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    connections = ConnectionManager()
    coordinator = ReservationCoordinator(
        SessionLocal,
        broadcaster=connections,
        notifier=BookingNotifier(LoggingEmailSender(settings.MAIL_FROM)),
        settings=settings,
    )
    app.state.connections = connections
    app.state.coordinator = coordinator
    coordinator.start()

    yield

    # Cleanup: stop the sweep and hold timers before the pool goes away
    await coordinator.stop()
    await close_redis()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Cinema booking API with per-room serialized seat reservations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Routes
app.include_router(api_router)
app.include_router(realtime.router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    coordinator = getattr(app.state, "coordinator", None)
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
        "active_holds": len(coordinator.holds) if coordinator else 0,
    }


@app.get("/metrics", tags=["Health"])
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
