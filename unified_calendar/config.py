"""
Configuration management for the Unified Calendar.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/unified_calendar.db",
        description="Database connection URL for persisted events"
    )

    # Institution
    institution_name: str = Field(
        default="Escuela Especial de Lenguaje Manitos Pintadas",
        description="Institution name used in exported calendars"
    )
    timezone: str = Field(
        default="America/Santiago",
        description="Institution timezone (IANA name). Static dates and recurrence are evaluated here"
    )

    # Recurrence expansion
    recurrence_horizon_days: int = Field(
        default=365,
        ge=1,
        description="Expansion window when a query has no end date"
    )
    recurrence_max_instances: int = Field(
        default=500,
        ge=1,
        description="Safety limit on occurrences produced from a single base event"
    )

    # Persisted store
    store_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for transient database errors before the store is reported unavailable"
    )

    # Export
    ical_prodid: str = Field(
        default="-//Manitos Pintadas//Calendario Escolar//ES",
        description="PRODID written to iCalendar exports"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.python_env == "production"

    @property
    def tzinfo(self) -> ZoneInfo:
        """Institution timezone as a tzinfo object."""
        return ZoneInfo(self.timezone)

    @property
    def uses_sqlite(self) -> bool:
        """Check if SQLite is the configured database."""
        return "sqlite" in self.database_url.lower()

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if self.uses_sqlite:
            errors.append(
                "Production requires a server database. "
                "Set DATABASE_URL to a PostgreSQL connection string."
            )

        if not self.ical_prodid.strip():
            errors.append("ICAL_PRODID must not be empty in production.")

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure we only load settings once.

    Returns:
        Settings instance loaded from environment

    Example:
        >>> from unified_calendar.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.timezone)
    """
    return Settings()
