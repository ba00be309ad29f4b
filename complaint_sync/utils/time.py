"""Time Utilities - UTC timestamps and wire timestamp parsing"""
from datetime import datetime, timezone
from typing import Any, Optional
from dateutil import parser as date_parser


# Sort key for records without a creation timestamp (treated as oldest)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # Naive values from the producers are UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def format_iso(dt: datetime) -> str:
    """ISO 8601 with a ``Z`` suffix, e.g. ``2024-03-01T09:00:00Z``"""
    return _as_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """Parse an ISO 8601 string into an aware datetime (naive -> UTC)"""
    return _as_utc(date_parser.isoparse(iso_string))


def coerce_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a wire timestamp into an aware datetime.

    Accepts datetimes, ISO strings and epoch milliseconds (what the
    complaint producers emit). Empty values become None; anything
    unrepresentable raises ValueError.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    if isinstance(value, str):
        return parse_iso(value)
    raise ValueError(f"Unsupported timestamp value: {value!r}")
