"""
Speech output serializer.

Guarantees that at most one utterance plays at a time, in the order requests
were enqueued, and that an interrupting request abandons everything before it.

All state changes happen while draining an event channel. Callers (the frame
loop) and the synthesizer's completion callback only post events; whichever
thread holds the owner lock applies them in order. A completion delivered
re-entrantly from inside synthesize() is therefore queued rather than
recursing into the serializer.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Union

from models.speech import SpeechQueueState, SpeechRequest
from .synthesizer import Synthesizer


@dataclass(frozen=True)
class _Enqueue:
    request: SpeechRequest


@dataclass(frozen=True)
class _Flush:
    pass


@dataclass(frozen=True)
class _Completed:
    utterance_id: int
    error: Optional[BaseException] = None


_Event = Union[_Enqueue, _Flush, _Completed]


class SpeechSerializer:
    """
    Single-consumer FIFO in front of a Synthesizer.

    Example:
        serializer = SpeechSerializer(LogSynthesizer())
        serializer.speak("person detected, center, 3.4 meters away")
        serializer.speak("Starting camera", interrupt=True)
        serializer.flush()
    """

    def __init__(self, synthesizer: Synthesizer):
        self._synth = synthesizer
        self._state = SpeechQueueState()
        self._events: "queue.SimpleQueue[_Event]" = queue.SimpleQueue()
        self._owner = threading.Lock()
        self._next_id = 0
        self._current_id: Optional[int] = None
        self._closed = False
        self._idle = threading.Event()
        self._idle.set()

    @property
    def speaking(self) -> bool:
        return self._state.speaking

    @property
    def pending(self) -> List[str]:
        """Texts waiting behind the current utterance."""
        return self._state.pending_texts()

    def enqueue(self, request: SpeechRequest) -> None:
        """Queue a request; returns without waiting for playback."""
        if self._closed:
            logging.debug(f"Speech serializer closed, dropping: {request.text}")
            return
        self._post(_Enqueue(request))

    def speak(self, text: str, interrupt: bool = False) -> None:
        self.enqueue(SpeechRequest(text=text, interrupt=interrupt))

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until nothing is speaking or queued.

        Returns:
            False if the timeout expired first.
        """
        return self._idle.wait(timeout)

    def flush(self) -> None:
        """Cancel the current utterance and drop everything queued."""
        self._post(_Flush())

    def close(self) -> None:
        """Flush and release the synthesizer."""
        self.flush()
        self._closed = True
        try:
            self._synth.close()
        except Exception as e:
            logging.warning(f"Error closing synthesizer: {e}")

    def _on_complete(self, utterance_id: int, error: Optional[BaseException] = None) -> None:
        self._post(_Completed(utterance_id, error))

    def _post(self, event: _Event) -> None:
        self._events.put(event)
        if isinstance(event, _Enqueue):
            self._idle.clear()
        self._drain()

    def _drain(self) -> None:
        # Re-check after release: an event posted while we held the lock
        # by a thread that failed to acquire it is ours to apply.
        while not self._events.empty():
            if not self._owner.acquire(blocking=False):
                return
            try:
                while True:
                    try:
                        event = self._events.get_nowait()
                    except queue.Empty:
                        break
                    self._handle(event)
            finally:
                self._owner.release()

    def _handle(self, event: _Event) -> None:
        if isinstance(event, _Enqueue):
            if event.request.interrupt:
                self._reset()
            self._state.pending.append(event.request)
            self._advance()
        elif isinstance(event, _Flush):
            self._reset()
        elif isinstance(event, _Completed):
            # A late completion of a cancelled utterance is ignored
            if event.utterance_id == self._current_id:
                if event.error is not None:
                    logging.warning(f"Speech synthesis failed: {event.error}")
                self._state.speaking = False
                self._current_id = None
                self._advance()
        self._update_idle()

    def _update_idle(self) -> None:
        if self._state.speaking or self._state.pending:
            self._idle.clear()
        else:
            self._idle.set()

    def _reset(self) -> None:
        if self._state.speaking:
            try:
                self._synth.cancel_current()
            except Exception as e:
                logging.warning(f"Failed to cancel speech: {e}")
        dropped = len(self._state.pending)
        self._state.pending.clear()
        self._state.speaking = False
        self._current_id = None
        if dropped:
            logging.debug(f"Speech queue flushed ({dropped} pending dropped)")

    def _advance(self) -> None:
        while not self._state.speaking and self._state.pending:
            request = self._state.pending.popleft()
            self._next_id += 1
            self._current_id = self._next_id
            self._state.speaking = True
            try:
                self._synth.synthesize(request.text, partial(self._on_complete, self._current_id))
            except Exception as e:
                logging.warning(f"Speech synthesis failed to start: {e}")
                self._state.speaking = False
                self._current_id = None
