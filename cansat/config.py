"""
GAIA CanSat Analyzer Configuration

Uses pydantic-settings to load configuration from environment variables and .env file.
All settings are validated on application startup.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Cleaning
    # =========================================================================
    DEFAULT_BASE_ALTITUDE_M: float = 571.0  # Launch site ground level

    # =========================================================================
    # Air Quality
    # =========================================================================
    DEFAULT_ALTITUDE_INTERVAL: str = "all"
    ALTITUDE_INTERVAL_CHOICES: str = "all,10,25,50,100,200,500"  # Comma-separated

    # =========================================================================
    # Ingestion Settings
    # =========================================================================
    MAX_UPLOAD_SIZE_BYTES: int = 52_428_800  # 50MB

    # =========================================================================
    # Application
    # =========================================================================
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated allowed origins
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @property
    def altitude_interval_choices(self) -> list[str]:
        """Interval options offered to the presentation layer."""
        return [c.strip() for c in self.ALTITUDE_INTERVAL_CHOICES.split(",") if c.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Export singleton instance for convenience
settings = get_settings()
