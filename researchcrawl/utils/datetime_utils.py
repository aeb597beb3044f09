from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return the current time as a UTC-naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def elapsed_ms(earlier: datetime, later: datetime) -> float:
    return (later - earlier) / timedelta(milliseconds=1)
