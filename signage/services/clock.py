from datetime import datetime, timezone


def utcnow() -> datetime:
    # Stored timestamps are naive UTC, same as the column defaults.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
