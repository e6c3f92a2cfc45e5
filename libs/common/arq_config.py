"""ARQ (Async Redis Queue) configuration for the checkout worker."""

from typing import Optional
from urllib.parse import urlparse

from arq.connections import RedisSettings
from libs.common.config import Settings, get_settings


def get_redis_settings(settings: Optional[Settings] = None) -> RedisSettings:
    """Parse REDIS_URL into ARQ RedisSettings (``rediss://`` enables TLS)."""
    settings = settings or get_settings()
    parsed = urlparse(settings.REDIS_URL)

    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or "0"),
        password=parsed.password,
        ssl=parsed.scheme == "rediss",
    )
