"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_isoformat(value: datetime | None = None) -> str:
    """ISO-8601 string for ``value`` (or now), always rendered in UTC."""
    value = value or utc_now()
    if value.tzinfo is None:
        # SQLite hands back naive datetimes for DateTime(timezone=True)
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
