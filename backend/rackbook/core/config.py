# backend/rackbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Set

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_CHAIN_LOOKAHEAD_WEEKS, DEFAULT_SAMPLE_MINUTES, MAX_SERIES_WEEKS
from .enums import PeriodType

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


PROD_ENVIRONMENTS: Set[str] = {"prod", "production", "live"}


class Settings(BaseSettings):
    environment: str = Field(
        default="development",
        description="Deployment environment name",
    )

    database_url: str = Field(
        default="sqlite:///./rackbook.db",
        description="SQLAlchemy URL of the booking store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements to the log")

    # Capacity engine
    capacity_sample_minutes: int = Field(
        default=DEFAULT_SAMPLE_MINUTES,
        description="Stride between capacity samples across a proposed booking",
    )
    chain_lookahead_weeks: int = Field(
        default=DEFAULT_CHAIN_LOOKAHEAD_WEEKS,
        description="Weeks of recurring occurrences re-checked against closed periods",
    )
    fallback_period_type: PeriodType = Field(
        default=PeriodType.GENERAL_USER,
        description="Period type whose override/default applies when no schedule matches",
    )
    require_capacity_ceiling: bool = Field(
        default=False,
        description="Refuse to create bookings when no capacity ceiling can be resolved",
    )
    max_series_weeks: int = Field(
        default=MAX_SERIES_WEEKS,
        ge=1,
        description="Maximum number of weekly instances in one booking series",
    )

    # Monitoring
    slow_operation_threshold_seconds: float = Field(
        default=1.0,
        description="Service operations slower than this are logged as warnings",
    )
    prometheus_enabled: bool = Field(default=True, description="Record Prometheus metrics")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("capacity_sample_minutes", "chain_lookahead_weeks")
    @classmethod
    def _must_be_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or "development"
        return value

    @property
    def is_production(self) -> bool:
        return self.environment in PROD_ENVIRONMENTS


settings = Settings()
logger.debug(
    "[CONFIG] Capacity engine: sample=%smin lookahead=%sw fallback=%s",
    settings.capacity_sample_minutes,
    settings.chain_lookahead_weeks,
    settings.fallback_period_type.value,
)
