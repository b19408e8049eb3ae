"""Text ID generation."""

from datetime import datetime, timezone
from ulid import ULID


def generate_id() -> str:
    """Generate a text-based record ID (ULID format, 26 chars)."""
    return str(ULID())


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string for timestamp columns."""
    return datetime.now(timezone.utc).isoformat()
