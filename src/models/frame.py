"""
FrameData model for captured camera frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass
class FrameData:
    """
    A captured frame and the metadata the pipeline needs from it.

    Attributes:
        frame: Image as a numpy array (BGR).
        width: Frame width in pixels (used for direction).
        height: Frame height in pixels.
        timestamp: Unix timestamp of capture.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier of the camera or file.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        h, w = frame.shape[:2]
        return cls(frame=frame, width=w, height=h, timestamp=timestamp,
                   frame_index=frame_index, source=source)

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
