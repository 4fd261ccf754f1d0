"""Small helpers for ISO 8601 timestamps."""

from datetime import datetime, timezone


def now() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision.

    All stored timestamps use this exact format so they sort lexically.
    """
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 string, treating naive values as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
