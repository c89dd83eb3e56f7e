"""
Hash Cache Configuration

Configuration management with environment variable support.
Provides connection defaults for Redis and store-wide cache options.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.cache.value_objects import CacheOptions

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Hash cache settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Redis configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=100, description="Redis connection pool size"
    )
    REDIS_CONNECTION_TIMEOUT: float = Field(
        default=5.0, gt=0, le=60, description="Socket connect timeout in seconds"
    )
    REDIS_OPERATION_TIMEOUT: float = Field(
        default=5.0, gt=0, le=60, description="Socket operation timeout in seconds"
    )
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(
        default=30, ge=0, le=3600, description="Pool health check interval in seconds"
    )

    # Circuit breaker settings
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(
        default=5, ge=1, le=100, description="Circuit breaker failure threshold"
    )
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Circuit breaker recovery timeout in seconds",
    )

    # Store-wide cache defaults
    CACHE_NAMESPACE: Optional[str] = Field(
        default=None, description="Namespace prepended to every hash key"
    )
    CACHE_EXPIRES_IN: Optional[float] = Field(
        default=None, description="Default relative expiry in seconds"
    )
    CACHE_RACE_CONDITION_TTL: Optional[int] = Field(
        default=None, ge=0, description="Default race condition window in seconds"
    )
    CACHE_COMPRESS: bool = Field(
        default=True, description="Compress large structured entries"
    )
    CACHE_COMPRESS_THRESHOLD: int = Field(
        default=1024, ge=0, description="Compression threshold in bytes"
    )
    CACHE_MAX_KEY_BYTESIZE: int = Field(
        default=1024, ge=128, description="Hash key length before digest truncation"
    )

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    @field_validator("REDIS_URL")
    @classmethod
    def validate_redis_url(cls, v):
        """Validate Redis URL scheme."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must use redis://, rediss:// or unix://")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    def default_cache_options(self) -> CacheOptions:
        """Store-wide cache options derived from settings."""
        return CacheOptions(
            namespace=self.CACHE_NAMESPACE,
            expires_in=self.CACHE_EXPIRES_IN,
            race_condition_ttl=self.CACHE_RACE_CONDITION_TTL,
            compress=self.CACHE_COMPRESS,
            compress_threshold=self.CACHE_COMPRESS_THRESHOLD,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
