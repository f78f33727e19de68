"""
Double-tap activation gate.

Distinguishes an intentional double tap from a stray single tap. The first
tap arms the gate; a second tap within the timeout fires the activation
callback. If the timeout passes first, the gate silently disarms.

Time is passed in explicitly (milliseconds) so that callers driven by a frame
loop or a UI event handler can use whatever clock they already have.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from algorithms.throttle.throttler import now_ms


class GateState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class ActivationGate:
    def __init__(
        self,
        timeout_ms: float = 300,
        on_activate: Optional[Callable[[], None]] = None,
    ):
        self._timeout_ms = timeout_ms
        self.on_activate = on_activate
        self._state = GateState.IDLE
        self._armed_at: Optional[float] = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def timeout_ms(self) -> float:
        return self._timeout_ms

    def tap(self, now: Optional[float] = None) -> bool:
        """
        Register a tap.

        Returns:
            True if this tap completed a double tap and fired the callback.
        """
        if now is None:
            now = now_ms()
        self.poll(now)

        if self._state == GateState.ARMED:
            self.reset()
            logging.info("Activation gate fired")
            if self.on_activate:
                try:
                    self.on_activate()
                except Exception as e:
                    logging.warning(f"Activation callback error: {e}")
            return True

        self._state = GateState.ARMED
        self._armed_at = now
        return False

    def poll(self, now: Optional[float] = None) -> None:
        """Disarm the gate if the second tap did not arrive in time."""
        if self._state != GateState.ARMED or self._armed_at is None:
            return
        if now is None:
            now = now_ms()
        if now - self._armed_at >= self._timeout_ms:
            self.reset()

    def reset(self) -> None:
        self._state = GateState.IDLE
        self._armed_at = None
