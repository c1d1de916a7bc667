"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from turfbook.api.routes import turfs, slots, bookings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(turfs.router)
api_router.include_router(slots.router)
api_router.include_router(bookings.router)
