"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            rotate=d.get("rotate", 0),
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class DetectionConfig:
    """
    Detector configuration.

    min_confidence is the precision floor of the announcement pipeline:
    detections at or below it are dropped before estimation. conf_threshold
    is the looser floor handed to the model itself.
    """
    backend: str = "yolo"
    model: str = "yolov8n.pt"
    min_confidence: float = 0.6
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    classes: Optional[List[int]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            backend=d.get("backend", "yolo"),
            model=d.get("model", "yolov8n.pt"),
            min_confidence=d.get("min_confidence", 0.6),
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            classes=d.get("classes"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "model": self.model,
            "min_confidence": self.min_confidence,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        return d


@dataclass
class SpatialConfig:
    """Distance/direction estimation constants."""
    focal_constant: float = 600.0
    min_distance: float = 0.5
    max_distance: float = 10.0
    left_threshold: float = 0.35
    right_threshold: float = 0.65
    default_height: float = 1.0
    # Entries merged over the built-in height table
    known_heights: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SpatialConfig":
        return cls(
            focal_constant=d.get("focal_constant", 600.0),
            min_distance=d.get("min_distance", 0.5),
            max_distance=d.get("max_distance", 10.0),
            left_threshold=d.get("left_threshold", 0.35),
            right_threshold=d.get("right_threshold", 0.65),
            default_height=d.get("default_height", 1.0),
            known_heights=dict(d.get("known_heights") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focal_constant": self.focal_constant,
            "min_distance": self.min_distance,
            "max_distance": self.max_distance,
            "left_threshold": self.left_threshold,
            "right_threshold": self.right_threshold,
            "default_height": self.default_height,
            "known_heights": dict(self.known_heights),
        }


@dataclass
class AnnouncementConfig:
    """Cooldown between announcements sharing a (class, direction) key."""
    min_interval_ms: int = 3000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnnouncementConfig":
        return cls(min_interval_ms=d.get("min_interval_ms", 3000))

    def to_dict(self) -> Dict[str, Any]:
        return {"min_interval_ms": self.min_interval_ms}


@dataclass
class SpeechConfig:
    """Speech output configuration."""
    backend: str = "pyttsx3"
    rate: int = 175
    volume: float = 1.0
    voice: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SpeechConfig":
        return cls(
            backend=d.get("backend", "pyttsx3"),
            rate=d.get("rate", 175),
            volume=d.get("volume", 1.0),
            voice=d.get("voice"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "rate": self.rate,
            "volume": self.volume,
        }
        if self.voice is not None:
            d["voice"] = self.voice
        return d


@dataclass
class ActivationConfig:
    """Double-tap activation gate."""
    enabled: bool = True
    timeout_ms: int = 300

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ActivationConfig":
        return cls(
            enabled=d.get("enabled", True),
            timeout_ms=d.get("timeout_ms", 300),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "timeout_ms": self.timeout_ms}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    spatial: SpatialConfig = field(default_factory=SpatialConfig)
    announcement: AnnouncementConfig = field(default_factory=AnnouncementConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    activation: ActivationConfig = field(default_factory=ActivationConfig)
    log_path: str = "logs/truepath.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            detection=DetectionConfig.from_dict(d.get("detection") or {}),
            spatial=SpatialConfig.from_dict(d.get("spatial") or {}),
            announcement=AnnouncementConfig.from_dict(d.get("announcement") or {}),
            speech=SpeechConfig.from_dict(d.get("speech") or {}),
            activation=ActivationConfig.from_dict(d.get("activation") or {}),
            log_path=d.get("log_path", "logs/truepath.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "spatial": self.spatial.to_dict(),
            "announcement": self.announcement.to_dict(),
            "speech": self.speech.to_dict(),
            "activation": self.activation.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
