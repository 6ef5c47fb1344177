"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Portfolio Microservice"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./portfolio.db"

    # Quote provider
    FINNHUB_API_KEY: str = ""
    FINNHUB_BASE_URL: str = "https://finnhub.io/api/v1"
    QUOTE_TIMEOUT_SECONDS: float = 8.0

    # Pacing: one cooldown after every PACING_BATCH_SIZE requests
    PACING_BATCH_SIZE: int = 30
    PACING_COOLDOWN_SECONDS: float = 1.0

    # Background refresh
    REFRESH_ENABLED: bool = True
    REFRESH_INTERVAL_SECONDS: float = 600.0

    # Single-quote endpoint cache
    PRICE_CACHE_TTL_SECONDS: int = 30
    PRICE_CACHE_MAXSIZE: int = 512

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:8501", "http://localhost:3000"]


settings = Settings()
