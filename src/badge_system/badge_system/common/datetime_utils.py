from __future__ import annotations

from datetime import datetime


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as naive local time.

    Stored timestamps are local wall-clock times. A value carrying `Z` or an
    offset is converted to local time before the offset is dropped.
    """
    v = value.strip()
    if v.endswith(("Z", "z")):
        v = v[:-1] + "+00:00"
    parsed = datetime.fromisoformat(v)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.replace(tzinfo=None)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
