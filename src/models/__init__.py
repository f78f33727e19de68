"""
Typed models for the TruePath application.

These models carry data between the detector, the spatial estimator,
the announcement throttler and the speech serializer.
"""

from .frame import FrameData
from .detection import (
    AnnotatedDetection,
    AnnouncementKey,
    BoundingBox,
    Detection,
    Direction,
)
from .speech import SpeechQueueState, SpeechRequest
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    SpatialConfig,
    AnnouncementConfig,
    SpeechConfig,
    ActivationConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    "AnnotatedDetection",
    "AnnouncementKey",
    "Direction",
    # Speech
    "SpeechRequest",
    "SpeechQueueState",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "SpatialConfig",
    "AnnouncementConfig",
    "SpeechConfig",
    "ActivationConfig",
]
