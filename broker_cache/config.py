"""
Configuration loader from environment variables.
Holds the environment name used in subscription keys and the Redis connection settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any


class Settings(BaseSettings):
    """
    Broker cache settings loaded from environment variables.
    All settings have sensible defaults for local development.
    """

    @field_validator("LOG_JSON", "REDIS_RETRY_ON_TIMEOUT", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        # Used verbatim in subscription keys, so it is never rewritten
        if not v.strip():
            raise ValueError("ENVIRONMENT must not be empty")
        if v != v.strip():
            raise ValueError(f"ENVIRONMENT has leading or trailing whitespace: {v!r}")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ==========================================================================
    # Deployment
    # ==========================================================================
    ENVIRONMENT: str = "production"  # prefixes every subscription key

    # ==========================================================================
    # Redis Configuration
    # ==========================================================================
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_SOCKET_TIMEOUT: float = 5.0
    REDIS_RETRY_ON_TIMEOUT: bool = True

    # ==========================================================================
    # Logging
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    LOG_JSON: bool = False

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


# Global settings instance
settings = Settings()
