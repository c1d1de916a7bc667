"""
Turf Slot Booking API - Main Application Entry Point

Serves owner dashboards, walk-in/phone booking entry, and customer apps:
- Slot leases ("reserve then pay") with soft expiry
- Atomic booking and cancellation under per-slot row locks
- Day schedule generation from operating hours and tariffs
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from turfbook.core.config import get_settings
from turfbook.core.exceptions import StorageUnavailableError, TurfBookError
from turfbook.core.logging import setup_logging, get_logger
from turfbook.core.metrics import metrics_endpoint, storage_errors
from turfbook.api.router import api_router
from turfbook.api.middleware import RequestLoggingMiddleware
from turfbook.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        lease_minutes=settings.SLOT_LEASE_MINUTES,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without slot grid cache")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Turf slot reservation and booking API with concurrency-safe transitions",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(TurfBookError)
async def turfbook_error_handler(request: Request, exc: TurfBookError):
    headers = {"Retry-After": "1"} if isinstance(exc, StorageUnavailableError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def storage_error_handler(request: Request, exc: Exception):
    storage_errors.inc()
    logger.error("storage_unavailable", error=str(exc))
    return await turfbook_error_handler(request, StorageUnavailableError())


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
