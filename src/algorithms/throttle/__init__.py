"""
Announcement throttling: suppresses repeats of the same (class, direction)
within a cooldown window.
"""

from .throttler import (
    DEFAULT_MIN_INTERVAL_MS,
    AnnouncementHistory,
    AnnouncementThrottler,
    now_ms,
    throttle,
)

__all__ = [
    "DEFAULT_MIN_INTERVAL_MS",
    "AnnouncementHistory",
    "AnnouncementThrottler",
    "now_ms",
    "throttle",
]
