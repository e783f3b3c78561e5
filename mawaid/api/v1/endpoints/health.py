"""Liveness and dependency checks."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from mawaid.config import settings
from mawaid.core.firebase import is_firebase_initialized
from mawaid.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    database: str
    push: str
    change_feed: str


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy", version=settings.app_version, environment=settings.environment
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    summary="Database, push and change feed status",
)
async def detailed_health_check(request: Request) -> DetailedHealthResponse:
    """
    Report the state of each backing service.

    The overall status is ``degraded`` when the database cannot be reached;
    push and the change feed are optional and only reported.
    """
    db_healthy = await check_database_connection()
    feed = getattr(request.app.state, "change_feed", None)

    return DetailedHealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        push="fcm+webpush" if is_firebase_initialized() else "webpush",
        change_feed="listening" if feed is not None and feed.is_connected else "disabled",
    )
