"""
Per-key cooldown for spoken announcements.

A detection is announced only if its (class, direction) key has not been
announced within the cooldown window. The same object re-detected every
frame therefore produces one announcement per window instead of one per
frame. Keys are not object identities: two chairs on the left share a key.
"""

from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional, Sequence, Tuple

from models.detection import AnnotatedDetection, AnnouncementKey


DEFAULT_MIN_INTERVAL_MS = 3000

AnnouncementHistory = Dict[AnnouncementKey, float]


def now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


def throttle(
    detections: Sequence[AnnotatedDetection],
    history: AnnouncementHistory,
    now: float,
    min_interval_ms: float = DEFAULT_MIN_INTERVAL_MS,
) -> Tuple[List[AnnotatedDetection], AnnouncementHistory]:
    """
    Select the detections to announce now.

    Args:
        detections: Annotated detections for this frame, in detector order.
        history: Last announcement time (ms) per key. Not modified.
        now: Current time in milliseconds.
        min_interval_ms: Cooldown per key.

    Returns:
        Tuple of (detections to announce in input order, updated history copy).
    """
    updated = dict(history)
    to_announce: List[AnnotatedDetection] = []
    for det in detections:
        key = det.announcement_key
        last = updated.get(key)
        if last is None or now - last >= min_interval_ms:
            to_announce.append(det)
            updated[key] = now
    return to_announce, updated


class AnnouncementThrottler:
    """
    Owns the announcement history for one detection session.

    The history is guarded by a lock so that a frame loop and any other
    thread (e.g. a session stop request) never interleave mutations.

    Example:
        throttler = AnnouncementThrottler(min_interval_ms=3000)

        # Each frame:
        to_announce = throttler.process(annotated, now_ms())
    """

    def __init__(self, min_interval_ms: float = DEFAULT_MIN_INTERVAL_MS):
        self._min_interval_ms = min_interval_ms
        self._history: AnnouncementHistory = {}
        self._lock = threading.Lock()

    @property
    def min_interval_ms(self) -> float:
        return self._min_interval_ms

    @property
    def history(self) -> AnnouncementHistory:
        """Snapshot of the current history."""
        with self._lock:
            return dict(self._history)

    def process(
        self,
        detections: Sequence[AnnotatedDetection],
        now: Optional[float] = None,
    ) -> List[AnnotatedDetection]:
        """Return the detections to announce and record them in the history."""
        if not detections:
            return []
        if now is None:
            now = now_ms()
        with self._lock:
            to_announce, self._history = throttle(
                detections, self._history, now, self._min_interval_ms
            )
        return to_announce

    def reset(self) -> None:
        """Forget all cooldowns."""
        with self._lock:
            self._history.clear()
