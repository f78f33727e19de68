"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import List, Optional

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import AnnotatedDetection, BoundingBox, Detection, Direction  # noqa: E402
from speech.synthesizer import Synthesizer  # noqa: E402


class ManualSynthesizer(Synthesizer):
    """Synthesizer whose utterances finish only when the test says so."""

    def __init__(self):
        self.started: List[str] = []
        self.callbacks = []
        self.cancelled = 0

    def synthesize(self, text, on_done):
        self.started.append(text)
        self.callbacks.append(on_done)

    def cancel_current(self):
        self.cancelled += 1

    def finish(self, error: Optional[BaseException] = None, index: int = -1):
        self.callbacks[index](error)


class FailingSynthesizer(Synthesizer):
    """Reports every utterance as failed, synchronously."""

    def __init__(self):
        self.attempted: List[str] = []

    def synthesize(self, text, on_done):
        self.attempted.append(text)
        on_done(RuntimeError("audio device unavailable"))

    def cancel_current(self):
        pass


def make_detection(class_name="person", confidence=0.9, x=0, y=0, w=100, h=300):
    return Detection(
        class_name=class_name,
        confidence=confidence,
        bbox=BoundingBox.from_xywh(x, y, w, h),
    )


def make_annotated(class_name="chair", direction=Direction.LEFT, distance=2.0):
    return AnnotatedDetection(
        detection=make_detection(class_name=class_name),
        distance=distance,
        direction=direction,
    )


@pytest.fixture
def manual_synth():
    return ManualSynthesizer()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  backend: "yolo"
  model: "yolov8n.pt"
  min_confidence: 0.6

announcement:
  min_interval_ms: 3000

speech:
  backend: "log"

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "backend": "yolo",
            "model": "yolov8n.pt",
            "min_confidence": 0.6,
            "iou_threshold": 0.45,
        },
        "spatial": {
            "focal_constant": 600,
            "known_heights": {"door": 2.1},
        },
        "announcement": {
            "min_interval_ms": 3000,
        },
        "speech": {
            "backend": "log",
            "rate": 175,
            "volume": 1.0,
        },
        "activation": {
            "enabled": True,
            "timeout_ms": 300,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
