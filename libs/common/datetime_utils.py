"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps written to the database.
    """
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime | None = None) -> int:
    """Milliseconds since the epoch, used to stamp generated file names."""
    return int((moment or utc_now()).timestamp() * 1000)
