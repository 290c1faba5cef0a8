from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_WEEK = timedelta(weeks=1)


def as_utc(value: datetime) -> datetime:
    # SQLite often returns naive datetimes; treat as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_weeks(value: datetime, weeks: int) -> datetime:
    """Return a new datetime ``weeks`` weeks after ``value``."""
    return value + weeks * ONE_WEEK


def weeks_since_epoch(value: datetime) -> int:
    """Whole weeks elapsed between the Unix epoch and ``value`` (floored)."""
    return (as_utc(value) - EPOCH) // ONE_WEEK
