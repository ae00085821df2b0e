"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the application.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# Lower bound for the reverse geocoding timeout (milliseconds).
MIN_GEOCODE_TIMEOUT_MS = 500


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins when set (e.g. sqlite for local development),
    # otherwise the URL is built from the POSTGRES_* parts.
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="mordor")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Redis Configuration
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    # After a failed connect, skip Redis for this many seconds.
    REDIS_RETRY_BACKOFF_S: float = Field(default=30.0)

    # Cache Configuration
    CACHE_TTL_DEFAULT: int = Field(default=300)  # 5 minutes

    # Reverse geocoding (OpenStreetMap Nominatim)
    OPENSTREETMAP_BASE_URL: str = Field(default="https://nominatim.openstreetmap.org")
    OPENSTREETMAP_TIMEOUT_MS: int = Field(default=3000)
    OPENSTREETMAP_USER_AGENT: str = Field(
        default="health-tracker-rest/1.0 (contact: example@example.com)"
    )
    # "memory" keeps names in-process, "redis" shares them between workers.
    GEOCODE_CACHE_BACKEND: str = Field(default="memory")
    GEOCODE_CACHE_MAX_ENTRIES: Optional[int] = Field(default=None)
    GEOCODE_CACHE_TTL_S: Optional[int] = Field(default=None)

    # Uploads (achievement badges)
    UPLOADS_DIR: str = Field(default="uploads")
    BADGE_MAX_FILE_BYTES: int = Field(default=2 * 1024 * 1024)

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8080)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)

    @field_validator("OPENSTREETMAP_TIMEOUT_MS")
    @classmethod
    def _floor_geocode_timeout(cls, value: int) -> int:
        return max(value, MIN_GEOCODE_TIMEOUT_MS)

    @field_validator("OPENSTREETMAP_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )


# Global settings instance
settings = Settings()
