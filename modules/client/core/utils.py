"""
Core Utilities.

Shared utility functions used across the client.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as a timezone-aware datetime.

    Returns:
        Current UTC time
    """
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the Unix epoch for the given moment."""
    return int(moment.timestamp() * 1000)
