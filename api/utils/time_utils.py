"""Time utilities."""
import time
from datetime import datetime, timezone


def now_ms() -> int:
    """Current time as epoch milliseconds (the stored timestamp format)."""
    return int(time.time() * 1000)


def parse_iso_timestamp(value: object) -> datetime | None:
    """Parse ISO timestamp string to datetime."""
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def iso_to_ms(value: object) -> int | None:
    """Parse an ISO timestamp into epoch milliseconds."""
    parsed = parse_iso_timestamp(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)
