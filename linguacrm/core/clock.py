"""Clock abstraction so time-dependent code can run against a fixed instant."""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


def isoformat_utc(value: datetime) -> str:
    """Render a timestamp as ISO 8601 with millisecond precision and a Z suffix.

    Matches the timestamps written by the browser client, e.g.
    ``2024-05-01T09:30:00.000Z``.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO 8601 timestamp, returning None when it is unparsable.

    Naive values are assumed to be UTC.
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
