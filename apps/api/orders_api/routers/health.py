from collections.abc import Callable

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orders_api.config import settings
from orders_api.db.session import SessionLocal
from orders_api.integrations.redis_client import RedisClient, RedisProtocolError
from orders_api.observability import log_event
from orders_api.schemas.health import (
    DependencyStatus,
    HealthResponse,
    ReadinessDependency,
    ReadinessResponse,
)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    summary="Readiness check",
    response_model=ReadinessResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadinessResponse}},
)
def readiness(response: Response) -> ReadinessResponse:
    dependencies = [
        ReadinessDependency(
            name="database",
            status=_checked("database", lambda: _database_status(SessionLocal)),
        )
    ]
    if settings.redis_url.strip():
        dependencies.append(
            ReadinessDependency(
                name="redis",
                status=_checked("redis", lambda: _redis_status(settings.redis_url)),
            )
        )

    overall = "ok" if all(dep.status == "ok" for dep in dependencies) else "degraded"
    if overall != "ok":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status=overall, dependencies=dependencies)


def _checked(name: str, checker: Callable[[], DependencyStatus]) -> DependencyStatus:
    try:
        return checker()
    except Exception as exc:
        log_event(f"readiness check for {name} failed: {type(exc).__name__}")
        return "error"


def _database_status(session_factory: Callable[[], Session]) -> DependencyStatus:
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return "error"
    return "ok"


def _redis_status(redis_url: str) -> DependencyStatus:
    try:
        return "ok" if RedisClient(redis_url, socket_timeout_s=1.0).ping() else "error"
    except (OSError, RedisProtocolError, ValueError):
        return "error"
