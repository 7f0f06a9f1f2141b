"""UTC time helpers."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def epoch_millis(moment: datetime | None = None) -> int:
    """Milliseconds since the Unix epoch, like a browser's ``Date.now()``."""
    moment = moment or utcnow()
    return int(moment.timestamp() * 1000)
