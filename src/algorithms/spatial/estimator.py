"""
Monocular distance and direction estimation.

Distance uses a linear inverse model: an object of known real height H that
spans h pixels is roughly H * F / h meters away, where F is a fixed reference
focal constant rather than a calibrated camera intrinsic. Results are clamped
to a useful announcement range; outside it the model is mostly noise.

Direction splits the frame into three bands with a wide center band so that
objects near the midline do not flicker between left and right.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from models.detection import AnnotatedDetection, Detection, Direction


# Assumed real-world vertical extent (meters) by lowercase class label
KNOWN_OBJECT_HEIGHTS: Dict[str, float] = {
    "person": 1.7,
    "chair": 0.9,
    "dining table": 0.75,
    "potted plant": 0.5,
    "bottle": 0.25,
    "cup": 0.12,
    "laptop": 0.02,
    "cell phone": 0.15,
    "book": 0.25,
    "clock": 0.3,
    "vase": 0.3,
    "door": 2.0,
    "refrigerator": 1.7,
    "oven": 0.9,
    "sink": 0.9,
    "bed": 0.6,
    "couch": 0.8,
    "toilet": 0.75,
    "tv": 0.6,
    "backpack": 0.4,
    "handbag": 0.3,
    "suitcase": 0.6,
    "bench": 0.5,
}

DEFAULT_OBJECT_HEIGHT = 1.0
REFERENCE_FOCAL_CONSTANT = 600.0
MIN_DISTANCE = 0.5
MAX_DISTANCE = 10.0
LEFT_THRESHOLD = 0.35
RIGHT_THRESHOLD = 0.65


@dataclass
class SpatialEstimator:
    """
    Estimator holding the calibration table and thresholds.

    Stateless after construction; safe to share across threads.

    Attributes:
        known_heights: Lowercase label -> height in meters.
        default_height: Height used for labels missing from the table.
        focal_constant: Reference focal constant in pixels.
        min_distance: Lower clamp in meters.
        max_distance: Upper clamp in meters.
        left_threshold: Normalized x below which an object is "left".
        right_threshold: Normalized x above which an object is "right".
    """
    known_heights: Dict[str, float] = field(default_factory=lambda: dict(KNOWN_OBJECT_HEIGHTS))
    default_height: float = DEFAULT_OBJECT_HEIGHT
    focal_constant: float = REFERENCE_FOCAL_CONSTANT
    min_distance: float = MIN_DISTANCE
    max_distance: float = MAX_DISTANCE
    left_threshold: float = LEFT_THRESHOLD
    right_threshold: float = RIGHT_THRESHOLD

    def object_height(self, class_label: str) -> float:
        return self.known_heights.get(class_label.lower(), self.default_height)

    def estimate_distance(
        self,
        class_label: str,
        box_height: float,
        frame_height: float,
    ) -> float:
        """
        Estimate distance in meters, clamped to [min_distance, max_distance].

        frame_height is accepted for interface symmetry; the linear model
        does not use it. A non-positive box height yields max_distance.
        """
        if box_height <= 0:
            return self.max_distance
        distance = (self.object_height(class_label) * self.focal_constant) / box_height
        return max(self.min_distance, min(self.max_distance, distance))

    def get_direction(self, box_center_x: float, frame_width: float) -> Direction:
        if frame_width <= 0:
            return Direction.CENTER
        normalized_x = box_center_x / frame_width
        if normalized_x < self.left_threshold:
            return Direction.LEFT
        if normalized_x > self.right_threshold:
            return Direction.RIGHT
        return Direction.CENTER

    def estimate(
        self,
        class_label: str,
        box_height: float,
        frame_height: float,
        box_center_x: float,
        frame_width: float,
    ) -> Tuple[float, Direction]:
        """Return (distance, direction) for one box."""
        return (
            self.estimate_distance(class_label, box_height, frame_height),
            self.get_direction(box_center_x, frame_width),
        )

    def annotate(
        self,
        detection: Detection,
        frame_width: float,
        frame_height: float,
    ) -> Optional[AnnotatedDetection]:
        """
        Annotate a detection with distance and direction.

        Returns None for a zero-size or inverted box, which is not announceable.
        """
        bbox = detection.bbox
        if not bbox.is_valid:
            logging.debug(
                f"Skipping {detection.class_name} with invalid box "
                f"{bbox.width:.1f}x{bbox.height:.1f}"
            )
            return None
        center_x, _ = bbox.center
        distance, direction = self.estimate(
            detection.class_name, bbox.height, frame_height, center_x, frame_width
        )
        return AnnotatedDetection(detection=detection, distance=distance, direction=direction)


def create_estimator_from_config(spatial_cfg: Mapping) -> SpatialEstimator:
    """
    Factory function to create a SpatialEstimator from the spatial config dict.

    known_heights entries are merged over the built-in table.
    """
    spatial_cfg = spatial_cfg or {}
    heights = dict(KNOWN_OBJECT_HEIGHTS)
    for label, height in (spatial_cfg.get("known_heights") or {}).items():
        heights[str(label).lower()] = float(height)
    return SpatialEstimator(
        known_heights=heights,
        default_height=float(spatial_cfg.get("default_height", DEFAULT_OBJECT_HEIGHT)),
        focal_constant=float(spatial_cfg.get("focal_constant", REFERENCE_FOCAL_CONSTANT)),
        min_distance=float(spatial_cfg.get("min_distance", MIN_DISTANCE)),
        max_distance=float(spatial_cfg.get("max_distance", MAX_DISTANCE)),
        left_threshold=float(spatial_cfg.get("left_threshold", LEFT_THRESHOLD)),
        right_threshold=float(spatial_cfg.get("right_threshold", RIGHT_THRESHOLD)),
    )


_default_estimator = SpatialEstimator()


def estimate_distance(class_label: str, box_height: float, frame_height: float) -> float:
    return _default_estimator.estimate_distance(class_label, box_height, frame_height)


def get_direction(box_center_x: float, frame_width: float) -> Direction:
    return _default_estimator.get_direction(box_center_x, frame_width)


def estimate(
    class_label: str,
    box_height: float,
    frame_height: float,
    box_center_x: float,
    frame_width: float,
) -> Tuple[float, Direction]:
    return _default_estimator.estimate(
        class_label, box_height, frame_height, box_center_x, frame_width
    )


def annotate_detection(
    detection: Detection,
    frame_width: float,
    frame_height: float,
) -> Optional[AnnotatedDetection]:
    return _default_estimator.annotate(detection, frame_width, frame_height)


def format_distance(distance: float) -> str:
    """
    Format a distance for speech.

    Under one meter: whole centimeters, halves rounded up ("50 centimeters").
    Otherwise one decimal place ("3.4 meters").
    """
    if distance < 1:
        return f"{int(math.floor(distance * 100 + 0.5))} centimeters"
    return f"{distance:.1f} meters"
