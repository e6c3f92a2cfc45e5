from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "checkout"
    STORE_NAME: str = "PetMAT"
    ADMIN_EMAIL: str = "admin@example.com"
    SUPPORT_EMAIL: str = "info@example.com"

    # Public URLs (storefront for back_urls, backend for notification_url)
    FRONTEND_URL: str = "http://localhost:5173"
    BACKEND_URL: str = "http://localhost:8000"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./checkout.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_CREATE_SCHEMA: bool = True  # disable when migrations are managed by Alembic

    # Redis (ARQ worker only)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Mercado Pago
    MP_ACCESS_TOKEN: str = ""
    MP_WEBHOOK_SECRET: str = ""
    MP_API_BASE_URL: str = "https://api.mercadopago.com"
    MP_USE_SANDBOX: bool = False
    GATEWAY_TIMEOUT_SECONDS: float = 5.0
    WEBHOOK_TOLERANCE_SECONDS: int = 300  # 0 disables the timestamp window
    CURRENCY_ID: str = "CLP"
    STATEMENT_DESCRIPTOR: str = "PetMAT"

    # Checkout
    REFERENCE_PREFIX: str = "petmat"
    DEFAULT_SHIPPING_COST: int = 2990
    STATUS_OVERWRITE_POLICY: Literal["last_write_wins", "terminal_sticky"] = (
        "last_write_wins"
    )
    STALE_PENDING_MINUTES: int = 30

    # Email (Resend)
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com"
    EMAIL_FROM: str = "PetMAT <onboarding@resend.dev>"
    EMAIL_TIMEOUT_SECONDS: float = 10.0

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


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
