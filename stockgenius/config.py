"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        app_name: Name of the application.
        debug: Enable debug mode.
        database_url: Database connection URL.
        secret_key: Secret key for JWT signing.
        access_token_expire_minutes: Default lifetime of issued owner tokens.
        algorithm: JWT signing algorithm.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "StockGenius"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./stockgenius.db"

    # Security
    secret_key: str = "change-this-to-a-secure-secret-key"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30

    # CORS (browser shell and API clients)
    cors_origins: list[str] = ["http://localhost:8000", "http://127.0.0.1:8000"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings.
    """
    return Settings()
