# backend/toolshare/routes/health.py
"""
Health check endpoints for monitoring and load balancer probes.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import __version__
from ..api.dependencies import get_db
from ..core.config import settings
from ..core.constants import BRAND_NAME

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _health_payload() -> dict:
    return {
        "status": "healthy",
        "service": f"{BRAND_NAME.lower()}-api",
        "version": __version__,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


@router.get("/health")
def health_check(response: Response) -> dict:
    """Liveness probe; never touches the database."""
    response.headers["Cache-Control"] = "no-store"
    return _health_payload()


@router.get("/ready")
def readiness_check(response: Response, db: Session = Depends(get_db)) -> dict:
    """Readiness probe: the booking store must answer a trivial query."""
    response.headers["Cache-Control"] = "no-store"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Readiness check failed: database unavailable", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "degraded", "database": "unavailable"}
    return {"status": "ready", "database": "ok"}
