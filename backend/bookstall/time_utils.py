# Overview: UTC timestamp helpers; the database stores naive UTC datetimes.

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional

from .validation import ValidationError

_DATE_ONLY_LENGTH = len("2026-10-19")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Optional[str], *, field: str = "timestamp", end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a query-string bound into a naive UTC datetime.

    Accepts a full ISO-8601 datetime ("2026-10-19T08:30:00Z"; offsets are
    converted to UTC, naive values are taken as UTC) or a bare date. A bare
    date means midnight, or the last instant of that day when end_of_day is
    set, so ?to=2026-10-19 still covers sales made on the 19th.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()

    try:
        if len(text) == _DATE_ONLY_LENGTH:
            day = date.fromisoformat(text)
            return datetime.combine(day, time.max if end_of_day else time.min)
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(
            f"{field} must be an ISO-8601 date or datetime",
            details={field: value},
        ) from None

    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """2026-10-19T08:30:00Z; naive input is UTC, microseconds are dropped."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=None, microsecond=0).isoformat() + "Z"
