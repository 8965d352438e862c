"""UTC helpers.

SQLite hands back naive datetimes for ``DateTime(timezone=True)`` columns;
everything the pipeline stores is UTC, so naive values are read as UTC.
"""

import re
from datetime import datetime, timezone

# Falcon reports nanoseconds; datetime keeps microseconds.
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into aware UTC.

    Raises ValueError on malformed input so callers can treat the record as bad.
    """
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(_EXTRA_FRACTION.sub(r"\1", text))
    return ensure_utc(parsed)
