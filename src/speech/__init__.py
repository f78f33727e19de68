"""
Speech output: a serializer that keeps utterances ordered and non-overlapping,
and the synthesizer backends it drives.
"""

from .serializer import SpeechSerializer
from .synthesizer import (
    LogSynthesizer,
    Pyttsx3Synthesizer,
    Synthesizer,
    create_synthesizer,
)

__all__ = [
    "SpeechSerializer",
    "Synthesizer",
    "LogSynthesizer",
    "Pyttsx3Synthesizer",
    "create_synthesizer",
]
