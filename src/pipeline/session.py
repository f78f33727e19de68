"""
Detection session and the fixed spoken prompts.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence

from models.detection import AnnotatedDetection
from models.speech import SpeechRequest
from algorithms.throttle.throttler import DEFAULT_MIN_INTERVAL_MS, AnnouncementThrottler
from speech.serializer import SpeechSerializer
from .stages.announce import AnnounceStage


INTRO_MESSAGE = (
    "Welcome to TruePath, your A R navigation assistant. "
    "This app will help you navigate indoor spaces by detecting objects and measuring distances. "
    "Double tap anywhere on the screen to start the camera and begin detection."
)
STARTING_MESSAGE = "Starting camera"
MODEL_LOADED_MESSAGE = "Object detection model loaded successfully"
MODEL_ERROR_MESSAGE = "Error loading detection model"
CAMERA_STARTED_MESSAGE = "Camera started. Begin scanning your environment."
CAMERA_ERROR_MESSAGE = "Unable to access camera. Please grant camera permissions."


class DetectionSession:
    """
    One activation-to-stop span of detection.

    Owns the announcement history (through its AnnounceStage) so that no
    cooldowns leak from one session into the next. The speech serializer is
    shared with the rest of the app and flushed at both ends of the session.
    """

    def __init__(
        self,
        serializer: SpeechSerializer,
        min_interval_ms: float = DEFAULT_MIN_INTERVAL_MS,
    ):
        self.serializer = serializer
        self._min_interval_ms = min_interval_ms
        self._stage: Optional[AnnounceStage] = None
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._stage is not None

    @property
    def throttler(self) -> Optional[AnnouncementThrottler]:
        stage = self._stage
        return stage.throttler if stage is not None else None

    def start(self, prompt: Optional[str] = None) -> None:
        """Begin a session with an empty history, abandoning any pending speech."""
        with self._lock:
            if self._stage is not None:
                return
            self.serializer.flush()
            self._stage = AnnounceStage(
                AnnouncementThrottler(self._min_interval_ms), self.serializer
            )
        logging.info(f"Detection session started (cooldown={self._min_interval_ms}ms)")
        if prompt:
            self.serializer.speak(prompt)

    def stop(self) -> None:
        """End the session: silence speech and discard the history."""
        with self._lock:
            if self._stage is None:
                return
            self._stage = None
            self.serializer.flush()
        logging.info("Detection session stopped")

    def announce(
        self,
        annotated: Sequence[AnnotatedDetection],
        now: Optional[float] = None,
    ) -> List[SpeechRequest]:
        # Held across enqueue so a concurrent stop() flushes after, never before
        with self._lock:
            if self._stage is None:
                return []
            return self._stage.process(annotated, now)
