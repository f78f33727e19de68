"""
Per-frame driver for the announcement pipeline.

The host calls process_frame() once per frame at whatever cadence it renders
at. The driver runs, in order and synchronously:
confidence filter -> spatial estimation -> throttle -> speech submission.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models.detection import AnnotatedDetection, Detection
from models.speech import SpeechRequest
from algorithms.throttle.throttler import now_ms
from pipeline.stages.annotate import AnnotateStage
from pipeline.session import DetectionSession


@dataclass
class FrameResult:
    """
    Output of one frame.

    Attributes:
        annotated: Detections with distance/direction, for the overlay.
        announced: Speech requests submitted this frame.
    """
    annotated: List[AnnotatedDetection] = field(default_factory=list)
    announced: List[SpeechRequest] = field(default_factory=list)


class PipelineDriver:
    def __init__(self, annotate_stage: AnnotateStage, session: DetectionSession):
        self.annotate_stage = annotate_stage
        self.session = session

    def process_frame(
        self,
        detections: Sequence[Detection],
        frame_width: float,
        frame_height: float,
        now: Optional[float] = None,
    ) -> FrameResult:
        """
        Process one frame's raw detections.

        Annotation always runs so the overlay stays current; announcements
        are only made while the session is active.
        """
        annotated = self.annotate_stage.process(detections, frame_width, frame_height)
        if not annotated:
            return FrameResult()
        if now is None:
            now = now_ms()
        announced = self.session.announce(annotated, now)
        return FrameResult(annotated=annotated, announced=announced)
