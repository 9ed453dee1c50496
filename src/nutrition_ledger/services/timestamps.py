"""Timestamp resolution and local-day bucketing.

Instants are stored as timezone-aware datetimes. Everything "daily" is
bucketed by the viewer's local calendar day through ``local_day_key``.
"""

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo

from nutrition_ledger.errors import FutureEntryError

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass(frozen=True)
class TimestampHint:
    """Relative date/time extracted by the estimator."""

    date: str | None = None
    time: str | None = None


def resolve_timestamp(
    reference: datetime,
    hint: TimestampHint | None = None,
    override: datetime | None = None,
    *,
    now: datetime | None = None,
) -> datetime:
    """Merge a reference date, an estimator hint and a user override.

    An override wins outright. Otherwise the hint's date replaces the
    reference's calendar day and its ``HH:MM`` time replaces the wall clock.
    Without a usable time the wall clock of ``now`` is used when given.
    Malformed hints are ignored.
    """
    if override is not None:
        return override

    result = reference
    hinted_day = parse_day(hint.date) if hint else None
    if hinted_day is not None:
        result = result.replace(
            year=hinted_day.year, month=hinted_day.month, day=hinted_day.day
        )

    hinted_time = _parse_time(hint.time) if hint else None
    if hinted_time is not None:
        return result.replace(
            hour=hinted_time.hour, minute=hinted_time.minute, second=0, microsecond=0
        )
    if now is not None:
        wall_clock = now.astimezone(reference.tzinfo) if reference.tzinfo else now
        return result.replace(
            hour=wall_clock.hour, minute=wall_clock.minute, second=0, microsecond=0
        )
    return result


def parse_day(raw: str | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` string, returning None when invalid."""
    if not raw or not _DATE_PATTERN.match(raw.strip()):
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        return None


def _parse_time(raw: str | None) -> time | None:
    if not raw:
        return None
    match = _TIME_PATTERN.match(raw.strip())
    if match is None:
        return None
    return time(hour=int(match.group(1)), minute=int(match.group(2)))


def local_day_key(timestamp: datetime, tz: tzinfo) -> str:
    """Return the ``YYYY-MM-DD`` local calendar day of an instant."""
    return _as_aware(timestamp).astimezone(tz).date().isoformat()


def local_day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Return ``[local midnight, next local midnight)`` for a day."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def ensure_not_future(timestamp: datetime, now: datetime | None = None) -> None:
    """Raise when an entry is dated strictly after ``now``."""
    current = now or datetime.now(tz=UTC)
    if _as_aware(timestamp) > _as_aware(current):
        raise FutureEntryError(timestamp, current)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
