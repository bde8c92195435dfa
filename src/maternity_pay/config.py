"""Configuration management for the maternity pay engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    engine_version: str
    host: str
    port: int
    debug: bool
    log_level: str = "INFO"

    # Entitlement defaults
    default_cmp_weeks: int = 8
    max_cmp_weeks: int = 52

    # Synthetic period fallback
    synthetic_period_limit: int = 15
    synthetic_pay_day: int = 28

    # Reporting windows
    calendar_horizon_days: int = 180
    returning_window_days: int = 28

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.default_cmp_weeks < 0 or self.default_cmp_weeks > self.max_cmp_weeks:
            raise ValueError("default_cmp_weeks must be between 0 and max_cmp_weeks")
        if self.synthetic_period_limit < 1:
            raise ValueError("synthetic_period_limit must be at least 1")
        if not 1 <= self.synthetic_pay_day <= 28:
            raise ValueError("synthetic_pay_day must be between 1 and 28")

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./maternity_pay.db",
            ),
            engine_version=os.getenv("ENGINE_VERSION", "1.0.0"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            default_cmp_weeks=int(os.getenv("DEFAULT_CMP_WEEKS", "8")),
            max_cmp_weeks=int(os.getenv("MAX_CMP_WEEKS", "52")),
            synthetic_period_limit=int(os.getenv("SYNTHETIC_PERIOD_LIMIT", "15")),
            synthetic_pay_day=int(os.getenv("SYNTHETIC_PAY_DAY", "28")),
            calendar_horizon_days=int(os.getenv("CALENDAR_HORIZON_DAYS", "180")),
            returning_window_days=int(os.getenv("RETURNING_WINDOW_DAYS", "28")),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
