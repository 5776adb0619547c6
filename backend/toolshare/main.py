# backend/toolshare/main.py
"""
ToolShare booking API.

Mounts the versioned booking, dispute and review routers plus the
health and Prometheus endpoints.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import is_running_tests, settings
from .core.constants import BRAND_NAME
from .core.exceptions import DomainException
from .database import init_db
from .routes import health, prometheus
from .routes.v1 import bookings as bookings_v1, disputes as disputes_v1, reviews as reviews_v1

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(
        f"Environment: {settings.environment} "
        f"(timezone={settings.marketplace_timezone}, locks={settings.booking_lock_enabled})"
    )
    init_db()
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")
    yield
    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=f"{BRAND_NAME} API",
    description="Peer-to-peer tool rental bookings",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Fallback for domain errors raised outside a route's own handling."""
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(disputes_v1.router, prefix="/disputes")
api_v1.include_router(reviews_v1.router, prefix="/reviews")

app.include_router(api_v1)
app.include_router(health.router)
app.include_router(prometheus.router)
