"""Timestamp helpers. All stored timestamps are naive UTC."""

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def date_part(value: Union[str, date, datetime, None]) -> Optional[str]:
    """
    Reduce a date/datetime (or its string form) to YYYY-MM-DD.
    "1990-05-01T00:00:00" and date(1990, 5, 1) both give "1990-05-01".
    """
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value).split("T")[0].split(" ")[0]
