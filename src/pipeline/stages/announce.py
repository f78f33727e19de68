"""
Announce stage: cooldown filter plus speech submission.

Each annotated detection that survives the throttler becomes one
non-interrupting SpeechRequest, submitted in detector order.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from models.detection import AnnotatedDetection
from models.speech import SpeechRequest
from algorithms.spatial.estimator import format_distance
from algorithms.throttle.throttler import AnnouncementThrottler
from speech.serializer import SpeechSerializer


def format_announcement(det: AnnotatedDetection) -> str:
    """e.g. "person detected, center, 3.4 meters away"."""
    return f"{det.class_name} detected, {det.direction.value}, {format_distance(det.distance)} away"


class AnnounceStage:
    """
    Pipeline stage that decides what to say and hands it to the serializer.

    The throttler holds the session's announcement history; this stage does
    not own any other state.
    """

    def __init__(self, throttler: AnnouncementThrottler, serializer: SpeechSerializer):
        self._throttler = throttler
        self._serializer = serializer

    @property
    def throttler(self) -> AnnouncementThrottler:
        return self._throttler

    def process(
        self,
        annotated: Sequence[AnnotatedDetection],
        now: Optional[float] = None,
    ) -> List[SpeechRequest]:
        """
        Throttle one frame's detections and enqueue the survivors.

        Returns:
            The speech requests submitted for this frame.
        """
        requests: List[SpeechRequest] = []
        for det in self._throttler.process(annotated, now):
            request = SpeechRequest(text=format_announcement(det))
            self._serializer.enqueue(request)
            requests.append(request)
            logging.debug(f"Announce: {request.text}")
        return requests

    def reset(self) -> None:
        self._throttler.reset()
