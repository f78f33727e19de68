"""
Pipeline stages for the announcement pipeline.

Each stage handles a specific part of the per-frame flow:
- annotate: confidence filter and distance/direction estimation
- announce: cooldown filter and speech submission
"""

from .annotate import AnnotateStage, AnnotateStageConfig, create_annotate_stage
from .announce import AnnounceStage, format_announcement

__all__ = [
    "AnnotateStage",
    "AnnotateStageConfig",
    "create_annotate_stage",
    "AnnounceStage",
    "format_announcement",
]
