"""
Configuration module with strict validation.

Key principles:
- DATABASE_URL is the only required setting
- Fuzzy match thresholds are tunable per deployment, defaults match the
  built-in rule tables
- Safe defaults for all optional settings
"""
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation.

    Loads from environment variables and .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database (REQUIRED)
    database_url: str = Field(
        ...,
        description="Tenant database connection URL"
    )

    db_pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connection pool size for server databases"
    )

    db_max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Connections allowed above db_pool_size"
    )

    db_echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging only)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # Duplicate detection thresholds
    customer_name_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Minimum name similarity for the customer name + address rule"
    )

    customer_address_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Minimum address similarity for the customer name + address rule"
    )

    lead_name_threshold: float = Field(
        default=0.90,
        ge=0.0,
        le=1.0,
        description="Minimum full-name similarity for the lead name rule"
    )

    lead_company_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Minimum company similarity for the lead name rule"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @property
    def is_sqlite(self) -> bool:
        """True when the configured database is SQLite (no pooling, no row locks)."""
        return self.database_url.startswith("sqlite")


# Global settings instance
# This can be imported throughout the application
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    This pattern allows:
    - Easy testing (can reset settings between tests)
    - Lazy loading (only loads when first accessed)
    - Singleton pattern (same instance used everywhere)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Reset the global settings instance.

    Useful for testing to ensure clean state between tests.
    """
    global _settings
    _settings = None
