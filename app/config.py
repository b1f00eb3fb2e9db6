from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Values in .env are used only when the environment does not set them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database Configuration - required
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    # Listener; hosting platforms inject PORT
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Message retention
    MESSAGE_RETENTION_DAYS: int = 3
    RETENTION_SWEEP_INTERVAL_SECONDS: float = 24 * 60 * 60
    RETENTION_SWEEP_ENABLED: bool = True

    # Driver roster
    ALLOW_DUPLICATE_DRIVER_NAMES: bool = True

    # Frontend
    STATIC_DIR: str = "public"
    CORS_ORIGINS: list[str] = ["*"]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
