from datetime import datetime, timedelta, timezone

UTC = timezone.utc


def at(hour: int, minute: int = 0, day: int = 1, month: int = 5) -> datetime:
    """A UTC instant in 2026; tests run the calculator in the UTC zone unless stated."""
    return datetime(2026, month, day, hour, minute, tzinfo=UTC)


def after(start: datetime, minutes: int) -> datetime:
    return start + timedelta(minutes=minutes)
