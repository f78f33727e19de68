"""
Inference backend interface.

Backends return raw, labeled pixel-space detections for one frame. Filtering
by confidence and any spatial reasoning happen downstream in the pipeline.
"""

from __future__ import annotations

from typing import List, Protocol

import numpy as np

from models.detection import Detection


class InferenceBackend(Protocol):
    def detect(self, frame: np.ndarray) -> List[Detection]:
        ...
