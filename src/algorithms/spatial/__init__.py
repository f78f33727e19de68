"""
Spatial estimation for detected objects.

Turns a bounding box and class label into an approximate distance and a
left/center/right direction. Pure functions; no state between frames.
"""

from .estimator import (
    KNOWN_OBJECT_HEIGHTS,
    REFERENCE_FOCAL_CONSTANT,
    SpatialEstimator,
    annotate_detection,
    create_estimator_from_config,
    estimate,
    estimate_distance,
    format_distance,
    get_direction,
)

__all__ = [
    "KNOWN_OBJECT_HEIGHTS",
    "REFERENCE_FOCAL_CONSTANT",
    "SpatialEstimator",
    "annotate_detection",
    "create_estimator_from_config",
    "estimate",
    "estimate_distance",
    "format_distance",
    "get_direction",
]
