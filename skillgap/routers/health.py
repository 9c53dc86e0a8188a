# health.py
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from skillgap.config import settings
from skillgap.database import DATABASE_URL, engine, mask_db_url
from skillgap.routers.dependencies import get_monitor
from skillgap.services.performance_monitor import PerformanceMonitor


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class Heartbeat(BaseModel):
    status: str
    version: str
    environment: str
    timestamp: datetime


class DatabaseStatus(BaseModel):
    orm: str
    orm_db_url: str
    timestamp: datetime


class PerformanceStatus(BaseModel):
    metrics: dict[str, Any]
    timestamp: datetime


@router.get("/", response_model=Heartbeat, summary="Liveness probe")
def heartbeat() -> Heartbeat:
    return Heartbeat(
        status="ok",
        version=settings.version,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/db", response_model=DatabaseStatus, summary="Database round-trip")
def database_status() -> DatabaseStatus:
    state = "ok"
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        state = "error"
    return DatabaseStatus(orm=state, orm_db_url=mask_db_url(DATABASE_URL), timestamp=datetime.now(timezone.utc))


@router.get("/performance", response_model=PerformanceStatus, summary="Operation timings and cache hit rates")
def performance_status(monitor: PerformanceMonitor = Depends(get_monitor)) -> PerformanceStatus:
    return PerformanceStatus(metrics=monitor.summary(), timestamp=datetime.now(timezone.utc))
