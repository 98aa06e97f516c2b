"""
Configuration settings for bookmark-recall.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Any, Literal
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RECALL_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///./recall.db",
        description="SQLAlchemy connection string (SQLite or PostgreSQL)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Reference Time
    # ========================================
    timezone: str = Field(
        default="UTC",
        description="Reference timezone used for calendar days and review hour",
    )

    # ========================================
    # Revision Schedule (fixed three-tier rule)
    # ========================================
    review_hour: int = Field(
        default=9,
        ge=0,
        le=23,
        description="Hour of day every scheduled review is normalized to",
    )
    review_strong_threshold: float = Field(
        default=80.0,
        description="Scores at or above this use the strong interval",
    )
    review_medium_threshold: float = Field(
        default=50.0,
        description="Scores at or above this (and below strong) use the medium interval",
    )
    review_interval_strong_days: int = Field(
        default=5,
        description="Days until next review after a strong score",
    )
    review_interval_medium_days: int = Field(
        default=3,
        description="Days until next review after a medium score",
    )
    review_interval_weak_days: int = Field(
        default=1,
        description="Days until next review after a weak score",
    )

    # ========================================
    # Daily Review
    # ========================================
    daily_review_due_limit: int = Field(
        default=5,
        description="Due bookmarks considered for the daily review",
    )
    daily_review_weak_limit: int = Field(
        default=3,
        description="Weakest bookmarks considered for the daily review",
    )
    daily_review_size: int = Field(
        default=5,
        description="Maximum bookmarks (and questions) in the daily review",
    )
    weak_recent_attempts: int = Field(
        default=3,
        description="Most recent attempts averaged when ranking weak bookmarks",
    )

    # ========================================
    # Analytics
    # ========================================
    weak_score_threshold: float = Field(
        default=60.0,
        description="Bookmark average below this is listed as weak in category analytics",
    )
    retention_window_days: int = Field(
        default=30,
        description="Days in the category retention series",
    )

    def get_review_config(self) -> dict[str, Any]:
        """Get the revision schedule rule as a dictionary."""
        return {
            "hour": self.review_hour,
            "thresholds": {
                "strong": self.review_strong_threshold,
                "medium": self.review_medium_threshold,
            },
            "intervals": {
                "strong": self.review_interval_strong_days,
                "medium": self.review_interval_medium_days,
                "weak": self.review_interval_weak_days,
            },
        }

    def now(self) -> datetime:
        """Current reference time as a naive datetime in the configured timezone."""
        return datetime.now(ZoneInfo(self.timezone)).replace(tzinfo=None)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
