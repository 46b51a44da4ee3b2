"""Utility functions for buildsync."""

from datetime import datetime
from typing import Optional

# Number of concurrent transfers
DEFAULT_WORKERS: int = 8

# Read size used when streaming file contents
DEFAULT_CHUNK_SIZE: int = 64 * 1024

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO format timestamp returned by the build data service.

    Args:
        timestamp_str: Timestamp string (e.g., "2015-02-03T10:30:00.000000Z")

    Returns:
        Timezone-aware datetime, or None if the value is missing or invalid
    """
    if not timestamp_str:
        return None

    value = timestamp_str.strip()
    # The 'Z' suffix indicates UTC time
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass

    # Go-style timestamps carry nanoseconds, which fromisoformat rejects
    if "." in value:
        head, _, tail = value.partition(".")
        offset = ""
        for sign in ("+", "-"):
            if sign in tail:
                offset = sign + tail.split(sign, 1)[1]
                break
        try:
            return datetime.fromisoformat(head + offset)
        except ValueError:
            return None
    return None


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a modification time for listings ("-" when unknown)."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S")
