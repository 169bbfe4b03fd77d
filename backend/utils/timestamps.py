"""Timestamp helpers.

All ledger timestamps are stored as naive datetimes in UTC. Month and year
bucketing reads the stored components directly, so every value has to be
normalized on the way in.
"""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Return the current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime | date | None) -> datetime:
    """Normalize a user-supplied date or datetime to naive UTC.

    - ``None`` becomes the current time
    - a ``date`` becomes midnight UTC of that day
    - an aware ``datetime`` is converted to UTC
    - a naive ``datetime`` is assumed to already be UTC
    """
    if value is None:
        return utc_now()
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
