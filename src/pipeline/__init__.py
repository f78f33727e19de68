"""
Pipeline module for the TruePath assistant.

The pipeline orchestrates the per-frame flow:
- Frame acquisition from observation sources
- Detection
- Confidence filtering and distance/direction estimation (AnnotateStage)
- Cooldown filtering and speech submission (AnnounceStage)
- Overlay rendering
"""

from .driver import FrameResult, PipelineDriver
from .engine import PipelineEngine, PipelineConfig, create_engine_from_config
from .stages.annotate import AnnotateStage, AnnotateStageConfig, create_annotate_stage
from .stages.announce import AnnounceStage, format_announcement

__all__ = [
    "FrameResult",
    "PipelineDriver",
    "PipelineEngine",
    "PipelineConfig",
    "create_engine_from_config",
    "AnnotateStage",
    "AnnotateStageConfig",
    "create_annotate_stage",
    "AnnounceStage",
    "format_announcement",
]
