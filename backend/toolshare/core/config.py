# backend/toolshare/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Set

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

from .constants import MAX_EVIDENCE_BYTES, SERVICE_FEE_RATE


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


PROD_SITE_MODES: Set[str] = {"prod", "production", "live"}


def _default_environment() -> str:
    raw = (os.getenv("SITE_MODE", "local") or "").strip().lower()
    return "production" if raw in PROD_SITE_MODES else "development"


class Settings(BaseSettings):
    environment: str = Field(default_factory=_default_environment)
    is_testing: bool = False

    # Storage
    database_url: str = Field(
        default="sqlite+pysqlite:///./toolshare.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the authoritative booking store",
    )
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Pricing
    service_fee_rate: str = Field(
        default=SERVICE_FEE_RATE,
        description="Renter service fee applied over the daily-rate subtotal (decimal string)",
    )

    # Booking lifecycle policy
    cancellation_notice_hours: int = Field(
        default=24,
        ge=0,
        description="Renters may cancel an accepted booking until this many hours before pickup",
    )
    return_grace_period_hours: int = Field(
        default=72,
        ge=1,
        description="Hours after the renter return before an unacknowledged booking auto-completes",
    )
    marketplace_timezone: str = Field(
        default="UTC",
        description="Zone in which calendar dates and pickup hours are interpreted",
    )
    validation_code_length: int = Field(default=8, ge=6, le=16)

    # Disputes & reviews
    max_evidence_bytes: int = Field(default=MAX_EVIDENCE_BYTES, gt=0)
    review_min_comment_chars: int = Field(default=3, ge=1)

    # Concurrency
    booking_lock_enabled: bool = Field(default=True, alias="BOOKING_LOCK_ENABLED")
    booking_lock_ttl_seconds: int = Field(default=30, ge=1)
    lock_namespace: str = "toolshare"

    # Background jobs
    auto_complete_batch_size: int = Field(default=200, ge=1)
    celery_timezone: str = "UTC"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("marketplace_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown marketplace timezone: {value}") from exc
        return value

    @property
    def marketplace_tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.marketplace_timezone)


settings = Settings()
