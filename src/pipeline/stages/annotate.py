"""
Annotate stage: confidence filter plus spatial estimation.

Detections at or below the confidence floor are dropped before anything
else looks at them. Survivors get a distance and direction; boxes with no
measurable extent are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from models.detection import AnnotatedDetection, Detection
from algorithms.spatial.estimator import SpatialEstimator, create_estimator_from_config


DEFAULT_MIN_CONFIDENCE = 0.6


@dataclass
class AnnotateStageConfig:
    """
    Attributes:
        min_confidence: Detections must score strictly above this to be kept.
    """
    min_confidence: float = DEFAULT_MIN_CONFIDENCE


class AnnotateStage:
    """
    Pipeline stage that turns raw detections into annotated detections.

    Example:
        stage = AnnotateStage(AnnotateStageConfig(), SpatialEstimator())

        # Each frame:
        annotated = stage.process(detections, frame_width, frame_height)
    """

    def __init__(
        self,
        config: Optional[AnnotateStageConfig] = None,
        estimator: Optional[SpatialEstimator] = None,
    ):
        self._config = config or AnnotateStageConfig()
        self._estimator = estimator or SpatialEstimator()

    @property
    def estimator(self) -> SpatialEstimator:
        return self._estimator

    def filter(self, detections: Sequence[Detection]) -> List[Detection]:
        floor = self._config.min_confidence
        return [d for d in detections if d.confidence > floor]

    def process(
        self,
        detections: Sequence[Detection],
        frame_width: float,
        frame_height: float,
    ) -> List[AnnotatedDetection]:
        """
        Filter and annotate one frame's detections, preserving detector order.
        """
        if not detections:
            return []

        annotated: List[AnnotatedDetection] = []
        for det in self.filter(detections):
            result = self._estimator.annotate(det, frame_width, frame_height)
            if result is not None:
                annotated.append(result)

        if len(annotated) != len(detections):
            logging.debug(f"Annotated {len(annotated)}/{len(detections)} detections")
        return annotated


def create_annotate_stage(detection_cfg: dict, spatial_cfg: dict) -> AnnotateStage:
    """
    Factory function to create an AnnotateStage from config.

    Args:
        detection_cfg: Detection configuration from YAML (min_confidence).
        spatial_cfg: Spatial configuration from YAML.
    """
    detection_cfg = detection_cfg or {}
    config = AnnotateStageConfig(
        min_confidence=float(detection_cfg.get("min_confidence", DEFAULT_MIN_CONFIDENCE)),
    )
    return AnnotateStage(config, create_estimator_from_config(spatial_cfg or {}))
