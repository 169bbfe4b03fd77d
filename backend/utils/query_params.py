"""Shared query parameter parsing utilities."""

from datetime import datetime, timezone

from fastapi import HTTPException

MIN_YEAR = 1900
MAX_YEAR = 9999


def resolve_year(year: int | None) -> int:
    """Return the requested reporting year, defaulting to the current one.

    Args:
        year: Year from the query string, or None.

    Returns:
        The year to report on.

    Raises:
        HTTPException: 400 if the year is outside the supported range.
    """
    if year is None:
        return datetime.now(timezone.utc).year
    if year < MIN_YEAR or year > MAX_YEAR:
        raise HTTPException(
            status_code=400,
            detail=f"Year must be between {MIN_YEAR} and {MAX_YEAR}",
        )
    return year
