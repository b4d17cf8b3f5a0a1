"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
Business tunables (yield, referral, cap rules) are NOT here: they live in
versioned ConfigurationSnapshot documents, see compensation.config.snapshot.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for Dramatiq and batch locks)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = None

    # Emergency stop flags
    emergency_stop_yield: bool = Field(
        default=False,
        description="Emergency stop for daily yield accrual"
    )
    emergency_stop_referral: bool = Field(
        default=False,
        description="Emergency stop for referral income distribution"
    )
    emergency_stop_payouts: bool = Field(
        default=False,
        description="Emergency stop for weekly payout requests"
    )

    # Batch locks
    daily_yield_lock_timeout: int = Field(
        default=300, gt=0,
        description="Seconds the daily yield batch lock is held"
    )
    weekly_payout_lock_timeout: int = Field(
        default=300, gt=0,
        description="Seconds the weekly payout batch lock is held"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )
            if self.database_echo:
                logger.warning(
                    'DATABASE_ECHO is enabled in production. '
                    'SQL statements including amounts will be logged.'
                )
        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown log level: {v}')
        return level

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver."""
        if self.database_url.startswith('postgresql://'):
            return self.database_url.replace(
                'postgresql://', 'postgresql+asyncpg://', 1
            )
        return self.database_url


# Global settings instance
settings = Settings()
