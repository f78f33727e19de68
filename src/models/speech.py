"""
Speech request and queue state models.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List


@dataclass(frozen=True)
class SpeechRequest:
    """
    A text to be spoken.

    Attributes:
        text: The utterance text.
        interrupt: Cancel the current utterance and drop everything queued
            before enqueuing this one.
    """
    text: str
    interrupt: bool = False


@dataclass
class SpeechQueueState:
    """
    Pending utterances plus the in-flight flag.

    speaking is True if and only if a synthesis is currently in flight.
    """
    pending: Deque[SpeechRequest] = field(default_factory=deque)
    speaking: bool = False

    def pending_texts(self) -> List[str]:
        return [r.text for r in self.pending]
