"""Application configuration with validation."""
from typing import List, Literal, Optional
from functools import lru_cache
from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from the environment and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "DJ Rank"
    APP_VERSION: str = "2.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"

    # API
    API_V1_PREFIX: str = "/api/v1"
    CORS_ALLOW_ORIGINS: List[str] = Field(default=["*"])

    # Admin authentication
    ADMIN_SECRET: Optional[SecretStr] = None
    AUTH_MAX_FAILED_ATTEMPTS: int = Field(default=5, ge=1, le=100)
    AUTH_WINDOW_SECONDS: int = Field(default=3600, ge=1, le=86400)

    # Storage backend
    STORAGE_BACKEND: Literal["memory", "snowflake"] = "memory"
    PERFORMERS_TABLE: str = "performers"

    # Snowflake
    SNOWFLAKE_ACCOUNT: Optional[str] = None
    SNOWFLAKE_USER: Optional[str] = None
    SNOWFLAKE_PASSWORD: Optional[SecretStr] = None
    SNOWFLAKE_DATABASE: Optional[str] = None
    SNOWFLAKE_SCHEMA: Optional[str] = None
    SNOWFLAKE_WAREHOUSE: Optional[str] = None
    SNOWFLAKE_ROLE: Optional[str] = None

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_TTL_PERFORMERS: int = Field(default=300, ge=1, le=86400)  # 5 minutes

    # Scoring
    SCORING_SCHEME: Literal["extended", "legacy"] = "extended"

    @model_validator(mode="after")
    def validate_snowflake_settings(self):
        """Snowflake backend needs an account, user and password."""
        if self.STORAGE_BACKEND == "snowflake":
            missing = [
                name for name in ("SNOWFLAKE_ACCOUNT", "SNOWFLAKE_USER", "SNOWFLAKE_PASSWORD")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Snowflake backend requires: {', '.join(missing)}")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production has required security settings."""
        if self.APP_ENV == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if self.ADMIN_SECRET is None or len(self.ADMIN_SECRET.get_secret_value()) < 16:
                raise ValueError("ADMIN_SECRET must be ≥16 characters in production")
            if self.STORAGE_BACKEND == "memory":
                raise ValueError("The memory storage backend is not allowed in production")
        return self

    @property
    def admin_secret(self) -> Optional[str]:
        return self.ADMIN_SECRET.get_secret_value() if self.ADMIN_SECRET else None


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
