"""API v1 router configuration."""

from fastapi import APIRouter

from mawaid.api.v1.endpoints import appointments, health, notifications, push, suggestions

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(suggestions.router, tags=["Suggestions"])
api_router.include_router(notifications.router, tags=["Notifications"])
api_router.include_router(push.router, tags=["Push"])
