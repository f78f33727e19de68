"""
Speech synthesizer backends.

A synthesizer speaks one utterance at a time and reports completion through
a callback. It never decides what to say next; ordering and cancellation
policy live in SpeechSerializer.

Backends:
- pyttsx3: offline TTS engine driven from a dedicated worker thread
- log: writes utterances to the log and completes immediately (headless runs)
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from models.config import SpeechConfig


# Called exactly once per synthesize() call; error is None on success.
CompletionCallback = Callable[[Optional[BaseException]], None]


class Synthesizer:
    """Speech synthesizer interface."""

    def synthesize(self, text: str, on_done: CompletionCallback) -> None:
        """Start speaking text without blocking; call on_done when finished."""
        raise NotImplementedError

    def cancel_current(self) -> None:
        """Stop the utterance in progress, if any."""
        raise NotImplementedError

    def close(self) -> None:
        """Release the audio device."""


class LogSynthesizer(Synthesizer):
    """Logs each utterance instead of playing it."""

    def __init__(self) -> None:
        self.spoken: list = []

    def synthesize(self, text: str, on_done: CompletionCallback) -> None:
        logging.info(f"[SPEECH] {text}")
        self.spoken.append(text)
        on_done(None)

    def cancel_current(self) -> None:
        pass


class Pyttsx3Synthesizer(Synthesizer):
    """
    pyttsx3 backend.

    pyttsx3 engines are not thread-safe and runAndWait() blocks, so the engine
    is created and driven by a single worker thread. synthesize() only hands
    the job over and returns immediately.
    """

    def __init__(self, cfg: SpeechConfig):
        self.cfg = cfg
        try:
            import pyttsx3  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "pyttsx3 is not installed. Install with `pip install pyttsx3` "
                "or switch speech.backend to 'log'."
            ) from e

        self._pyttsx3 = pyttsx3
        self._engine: Any = None
        self._jobs: "queue.Queue[Optional[Tuple[int, str, CompletionCallback]]]" = queue.Queue()
        # Jobs stamped with an older generation were cancelled while queued
        self._generation = 0
        self._lock = threading.Lock()
        self._busy = threading.Event()
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name="tts-worker", daemon=True)
        self._thread.start()
        self._ready.wait(timeout=5.0)

    def synthesize(self, text: str, on_done: CompletionCallback) -> None:
        with self._lock:
            generation = self._generation
        self._jobs.put((generation, text, on_done))

    def cancel_current(self) -> None:
        """Stop the utterance in progress and discard every job queued before this call."""
        with self._lock:
            self._generation += 1
            busy = self._busy.is_set()
        if self._engine is not None and busy:
            try:
                self._engine.stop()
            except Exception as e:
                logging.warning(f"TTS cancel failed: {e}")

    def close(self) -> None:
        self.cancel_current()
        self._jobs.put(None)
        self._thread.join(timeout=5.0)

    def _configure(self, engine: Any) -> None:
        engine.setProperty("rate", self.cfg.rate)
        engine.setProperty("volume", self.cfg.volume)
        if self.cfg.voice:
            engine.setProperty("voice", self.cfg.voice)

    def _run(self) -> None:
        try:
            self._engine = self._pyttsx3.init()
            self._configure(self._engine)
            logging.info(f"pyttsx3 engine ready (rate={self.cfg.rate}, volume={self.cfg.volume})")
        except Exception as e:
            logging.error(f"Failed to initialize pyttsx3: {e}")
            self._engine = None
        finally:
            self._ready.set()

        while True:
            job = self._jobs.get()
            if job is None:
                break
            generation, text, on_done = job
            with self._lock:
                stale = generation != self._generation
                if not stale:
                    self._busy.set()
            if stale:
                logging.debug(f"Skipping cancelled utterance: {text}")
                on_done(None)
                continue

            error: Optional[BaseException] = None
            try:
                if self._engine is None:
                    raise RuntimeError("TTS engine unavailable")
                self._engine.say(text)
                self._engine.runAndWait()
            except Exception as e:
                error = e
            finally:
                self._busy.clear()
            on_done(error)


def create_synthesizer(speech_cfg: Dict[str, Any]) -> Synthesizer:
    """
    Factory function to create a Synthesizer from the speech config dict.

    Args:
        speech_cfg: Speech configuration from YAML.
    """
    cfg = SpeechConfig.from_dict(speech_cfg or {})
    if cfg.backend == "log":
        return LogSynthesizer()
    if cfg.backend == "pyttsx3":
        return Pyttsx3Synthesizer(cfg)
    raise ValueError(f"Unknown speech backend: {cfg.backend}")
