from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "payments"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Placeholder keeps local/test runs from failing; real deployments override via env.
    AUTH_JWT_SECRET: str = "test-jwt-secret"
    AUTH_JWT_ALGORITHM: str = "HS256"

    # Collaborating services
    LEASES_SERVICE_URL: str = "http://leases-service:8002"

    # Payment processor (Stripe-compatible API)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_API_BASE_URL: str = "https://api.stripe.com"
    PROCESSOR_TIMEOUT_SECONDS: float = 15.0
    WEBHOOK_SIGNATURE_TOLERANCE_SECONDS: int = 300

    # Payments
    PLATFORM_FEE_BPS: int = 290  # 2.9%
    PAYMENT_CURRENCY: str = "usd"

    # Reconciliation
    WEBHOOK_NOT_FOUND_RETRIES: int = 3
    WEBHOOK_RETRY_BACKOFF_SECONDS: float = 0.25
    STALE_PENDING_MINUTES: int = 15

    # Background worker
    REDIS_URL: str = "redis://localhost:6379/0"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @field_validator("PLATFORM_FEE_BPS")
    @classmethod
    def check_fee_rate(cls, v: int) -> int:
        if v < 0 or v > 10_000:
            raise ValueError("PLATFORM_FEE_BPS must be between 0 and 10000")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
