"""
Detection models for object detection results and their spatial annotation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple


class Direction(str, Enum):
    """Horizontal band of the frame an object's center falls into."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def is_valid(self) -> bool:
        """A box with zero or negative extent cannot be measured."""
        return self.width > 0 and self.height > 0

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)


@dataclass(frozen=True)
class Detection:
    """
    A single raw detection from an object detector.

    Attributes:
        class_name: Human-readable class label (e.g. "person").
        confidence: Detection confidence score (0-1).
        bbox: Bounding box in pixel coordinates of the current frame.
        class_id: Optional class ID from the detector.
    """
    class_name: str
    confidence: float
    bbox: BoundingBox
    class_id: Optional[int] = None

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @classmethod
    def from_xywh(
        cls,
        class_name: str,
        confidence: float,
        bbox: Sequence[float],
        class_id: Optional[int] = None,
    ) -> "Detection":
        """Create Detection from a detector-style [x, y, width, height] box."""
        x, y, w, h = bbox
        return cls(
            class_name=class_name,
            confidence=float(confidence),
            bbox=BoundingBox.from_xywh(float(x), float(y), float(w), float(h)),
            class_id=class_id,
        )


class AnnouncementKey(NamedTuple):
    """Two detections with the same key count as the same thing to announce."""
    class_name: str
    direction: Direction


@dataclass(frozen=True)
class AnnotatedDetection:
    """
    A detection with its estimated distance (meters) and direction.

    Created once per frame by the spatial estimator and discarded at the
    end of the frame.
    """
    detection: Detection
    distance: float
    direction: Direction

    @property
    def class_name(self) -> str:
        return self.detection.class_name

    @property
    def confidence(self) -> float:
        return self.detection.confidence

    @property
    def bbox(self) -> BoundingBox:
        return self.detection.bbox

    @property
    def announcement_key(self) -> AnnouncementKey:
        return AnnouncementKey(self.detection.class_name, self.direction)


def detections_from_tuples(
    raw: Sequence[Tuple[str, float, Sequence[float]]],
) -> List[Detection]:
    """
    Adapter: Convert (class_label, confidence, [x, y, w, h]) tuples to Detections.
    """
    if not raw:
        return []
    return [Detection.from_xywh(label, conf, bbox) for label, conf, bbox in raw]
