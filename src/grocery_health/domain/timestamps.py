"""Timestamp helpers."""

from datetime import UTC, datetime


def utc_timestamp(moment: datetime | None = None) -> datetime:
    """Return ``moment`` as an aware datetime, defaulting to now.

    Naive values are taken to be UTC.
    """
    if moment is None:
        return datetime.now(tz=UTC)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment
