"""
Pipeline engine for the TruePath assistant.

This module owns the frame loop: it reads frames from an observation source,
runs the detector, pushes the detections through the announcement driver,
and renders the overlay window. Before activation (double tap) it only shows
frames and speaks the intro prompt.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import cv2
import numpy as np

from models.detection import AnnotatedDetection
from models.frame import FrameData
from activation.gate import ActivationGate
from algorithms.spatial.estimator import format_distance
from inference.backend import InferenceBackend
from observation import ObservationSource, create_source_from_config
from pipeline.driver import FrameResult, PipelineDriver
from pipeline.stages.annotate import create_annotate_stage
from pipeline.session import (
    CAMERA_ERROR_MESSAGE,
    CAMERA_STARTED_MESSAGE,
    INTRO_MESSAGE,
    MODEL_ERROR_MESSAGE,
    MODEL_LOADED_MESSAGE,
    STARTING_MESSAGE,
    DetectionSession,
)
from speech.serializer import SpeechSerializer


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        max_consecutive_failures: Max frame read failures before stopping.
        stats_log_interval: Seconds between status log messages.
        display: Show the overlay window (also the tap surface).
        window_name: Title of the overlay window.
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    display: bool = False
    window_name: str = "TruePath"


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detection_count: int = 0
    announcement_count: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    consecutive_failures: int = 0


MAX_OVERLAY_LINES = 5


def format_overlay_line(det: AnnotatedDetection) -> str:
    """One row of the on-screen detection list."""
    return (
        f"{det.class_name} - Direction: {det.direction.value} | "
        f"Distance: {format_distance(det.distance)}"
    )


class PipelineEngine:
    """
    Main processing engine.

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        driver = PipelineDriver(AnnotateStage(), DetectionSession(serializer))
        engine = PipelineEngine(source, detector, driver, PipelineConfig(display=True),
                                gate=ActivationGate(300))
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: Optional[InferenceBackend],
        driver: PipelineDriver,
        config: PipelineConfig,
        gate: Optional[ActivationGate] = None,
    ):
        self.source = source
        self.detector = detector
        self.driver = driver
        self.config = config
        self.gate = gate
        if gate is not None and gate.on_activate is None:
            gate.on_activate = self.activate
        self.stats = PipelineStats()
        self._running = False
        self._callbacks: List[Callable[[FrameData, FrameResult], None]] = []

    @property
    def session(self) -> DetectionSession:
        return self.driver.session

    @property
    def serializer(self) -> SpeechSerializer:
        return self.driver.session.serializer

    def add_callback(self, callback: Callable[[FrameData, FrameResult], None]) -> None:
        """
        Add a callback to be called after each frame is processed.

        Args:
            callback: Function taking (frame_data, result) as arguments.
        """
        self._callbacks.append(callback)

    def activate(self) -> None:
        """Start the detection session and speak the start-up prompts."""
        if self.session.is_active:
            return
        self.session.start(prompt=STARTING_MESSAGE)
        self.serializer.speak(MODEL_LOADED_MESSAGE if self.detector is not None else MODEL_ERROR_MESSAGE)
        self.serializer.speak(CAMERA_STARTED_MESSAGE)

    def tap(self) -> None:
        """Forward a tap from the UI to the activation gate."""
        if self.gate is not None and not self.session.is_active:
            self.gate.tap()

    def run(self) -> None:
        """
        Run the main processing loop.

        Opens the observation source, processes frames until stopped or
        exhausted, then stops the session and closes resources.
        """
        self._running = True
        self.stats = PipelineStats()

        try:
            try:
                self.source.open()
            except RuntimeError as e:
                logging.error(f"Error accessing camera: {e}")
                self.serializer.speak(CAMERA_ERROR_MESSAGE, interrupt=True)
                return
            logging.info(f"Pipeline started: source={self.source.source_id}")

            if self.config.display:
                cv2.namedWindow(self.config.window_name)
                cv2.setMouseCallback(self.config.window_name, self._on_mouse)

            if self.gate is None:
                self.activate()
            else:
                self.serializer.speak(INTRO_MESSAGE, interrupt=True)

            while self._running:
                frame_data = self.source.read()

                if frame_data is None:
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(0.5)
                    continue

                self.stats.consecutive_failures = 0
                if self.gate is not None:
                    self.gate.poll()

                result = self._process_frame(frame_data)

                for callback in self._callbacks:
                    try:
                        callback(frame_data, result)
                    except Exception as e:
                        logging.warning(f"Callback error: {e}")

                if self.config.display:
                    if not self._handle_display(frame_data, result):
                        break  # User pressed 'q'

                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        except Exception as e:
            logging.error(f"Pipeline error: {e}")
            import traceback
            traceback.print_exc()
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def _process_frame(self, frame_data: FrameData) -> FrameResult:
        """Run detection and the announcement driver on one frame."""
        self.stats.frame_count += 1

        detections = []
        if self.detector is not None and self.session.is_active:
            try:
                detections = self.detector.detect(frame_data.frame)
            except Exception as e:
                logging.warning(f"Detection failed on frame {frame_data.frame_index}: {e}")

        result = self.driver.process_frame(detections, frame_data.width, frame_data.height)

        self.stats.detection_count += len(result.annotated)
        self.stats.announcement_count += len(result.announced)
        for request in result.announced:
            logging.info(f"Announced: {request.text}")

        return result

    def _draw_overlays(self, frame: np.ndarray, result: FrameResult) -> np.ndarray:
        """Draw detection boxes, a status header and the detection list along the bottom."""
        COLOR_BOX = (0, 255, 0)  # Green
        COLOR_LABEL_BG = (0, 0, 0)
        font = cv2.FONT_HERSHEY_SIMPLEX

        for det in result.annotated:
            x1, y1, x2, y2 = det.bbox.as_int_tuple()
            cv2.rectangle(frame, (x1, y1), (x2, y2), COLOR_BOX, 3)

            label = f"{det.class_name} {format_distance(det.distance)}"
            (tw, th), _ = cv2.getTextSize(label, font, 0.6, 2)
            cv2.rectangle(frame, (x1, y1 - th - 10), (x1 + tw + 10, y1), COLOR_LABEL_BG, -1)
            cv2.putText(frame, label, (x1 + 5, y1 - 6), font, 0.6, COLOR_BOX, 2)

        if self.session.is_active:
            count = len(result.annotated)
            header = f"TruePath Active - {count} object{'s' if count != 1 else ''} detected"
        else:
            header = "Double tap anywhere on the screen to start"
        cv2.putText(frame, header, (10, 30), font, 0.8, (255, 255, 255), 2)

        # Detection list along the bottom edge, in detector order
        rows = result.annotated[:MAX_OVERLAY_LINES]
        line_height = 26
        top = frame.shape[0] - line_height * len(rows) - 8
        if rows:
            cv2.rectangle(frame, (0, top), (frame.shape[1], frame.shape[0]), COLOR_LABEL_BG, -1)
        for i, det in enumerate(rows):
            y = top + line_height * (i + 1)
            cv2.putText(frame, format_overlay_line(det), (10, y), font, 0.55, (255, 255, 255), 1)

        return frame

    def _handle_display(self, frame_data: FrameData, result: FrameResult) -> bool:
        """
        Show the overlay window and handle keys.

        Space counts as a tap. Returns False if user pressed 'q' to quit.
        """
        annotated_frame = self._draw_overlays(frame_data.frame.copy(), result)
        cv2.imshow(self.config.window_name, annotated_frame)
        key = cv2.waitKey(1) & 0xFF
        if key == ord(' '):
            self.tap()
        return key != ord('q')

    def _on_mouse(self, event: int, x: int, y: int, flags: int, param: Any) -> None:
        if event == cv2.EVENT_LBUTTONDOWN:
            self.tap()

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"detections={self.stats.detection_count}, "
                f"announcements={self.stats.announcement_count}, "
                f"speech_pending={len(self.serializer.pending)}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        """Stop the session and release resources."""
        self._running = False

        self.session.stop()

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        if self.config.display:
            cv2.destroyAllWindows()

        logging.info("Pipeline stopped")


def create_engine_from_config(
    config: Dict[str, Any],
    detector: Optional[InferenceBackend],
    serializer: SpeechSerializer,
    display: bool = False,
    use_gate: bool = True,
) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from the config dict.

    The activation gate is only used with a display window, since the window
    is the tap surface.

    Args:
        config: Full application config dict.
        detector: Detector backend, or None when no model could be loaded.
        serializer: Shared speech serializer.
        display: Enable the overlay window.
        use_gate: Require a double tap before announcing.
    """
    source = create_source_from_config(config.get("camera", {}), source_id="main-camera")

    annotate_stage = create_annotate_stage(config.get("detection", {}), config.get("spatial", {}))
    announcement_cfg = config.get("announcement", {}) or {}
    session = DetectionSession(
        serializer,
        min_interval_ms=float(announcement_cfg.get("min_interval_ms", 3000)),
    )
    driver = PipelineDriver(annotate_stage, session)

    activation_cfg = config.get("activation", {}) or {}
    gate = None
    if display and use_gate and activation_cfg.get("enabled", True):
        gate = ActivationGate(timeout_ms=float(activation_cfg.get("timeout_ms", 300)))

    return PipelineEngine(source, detector, driver, PipelineConfig(display=display), gate=gate)
