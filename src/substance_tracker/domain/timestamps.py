"""Local naive timestamp helpers.

Timestamps are stored as local wall-clock strings without a timezone suffix,
for example ``2026-01-01T12:30:00``. Older documents carried UTC instants
(``...Z``) or explicit offsets; those are converted to the local reading.
"""

import re
from datetime import datetime, tzinfo

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

_UTC_SUFFIX = re.compile(r"T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})$")


def now_local(tz: tzinfo | None = None) -> datetime:
    """Return the current local time as a naive datetime."""
    if tz is None:
        return datetime.now().replace(microsecond=0)
    return datetime.now(tz=tz).replace(tzinfo=None, microsecond=0)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as a naive local timestamp string."""
    return value.strftime(TIMESTAMP_FORMAT)


def has_utc_suffix(text: object) -> bool:
    """Return True when an ISO-8601 string ends in ``Z`` or a UTC offset."""
    return isinstance(text, str) and _UTC_SUFFIX.search(text) is not None


def parse_timestamp(text: str, tz: tzinfo | None = None) -> datetime:
    """Parse a stored timestamp into a naive local datetime.

    Aware inputs are converted to ``tz`` (system local zone when None).
    Raises ValueError for text that is not ISO-8601.
    """
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value
    return value.astimezone(tz).replace(tzinfo=None)


def to_local_naive(text: str, tz: tzinfo | None = None) -> str:
    """Rewrite a suffixed timestamp as a naive local string.

    Strings without a suffix are returned unchanged.
    """
    if not has_utc_suffix(text):
        return text
    return format_timestamp(parse_timestamp(text, tz))
