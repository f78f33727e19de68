"""
Tests for the double-tap activation gate.
"""

from activation.gate import ActivationGate, GateState


class TestActivationGate:
    def test_single_tap_arms(self):
        gate = ActivationGate(timeout_ms=300)
        assert gate.tap(now=0) is False
        assert gate.state == GateState.ARMED

    def test_double_tap_fires(self):
        fired = []
        gate = ActivationGate(timeout_ms=300, on_activate=lambda: fired.append(True))

        gate.tap(now=0)
        assert gate.tap(now=200) is True

        assert fired == [True]
        assert gate.state == GateState.IDLE

    def test_slow_second_tap_rearms(self):
        fired = []
        gate = ActivationGate(timeout_ms=300, on_activate=lambda: fired.append(True))

        gate.tap(now=0)
        assert gate.tap(now=400) is False
        assert gate.state == GateState.ARMED
        assert fired == []

        # A quick tap after the re-arm completes a double tap
        assert gate.tap(now=500) is True
        assert fired == [True]

    def test_poll_expires_armed_gate(self):
        gate = ActivationGate(timeout_ms=300)
        gate.tap(now=0)
        gate.poll(now=299)
        assert gate.state == GateState.ARMED
        gate.poll(now=300)
        assert gate.state == GateState.IDLE

    def test_third_tap_starts_over(self):
        fired = []
        gate = ActivationGate(timeout_ms=300, on_activate=lambda: fired.append(True))
        gate.tap(now=0)
        gate.tap(now=100)
        assert gate.tap(now=150) is False
        assert len(fired) == 1
        assert gate.state == GateState.ARMED

    def test_callback_error_does_not_propagate(self):
        def boom():
            raise RuntimeError("activation failed")

        gate = ActivationGate(timeout_ms=300, on_activate=boom)
        gate.tap(now=0)
        assert gate.tap(now=10) is True
        assert gate.state == GateState.IDLE

    def test_reset(self):
        gate = ActivationGate()
        gate.tap(now=0)
        gate.reset()
        assert gate.state == GateState.IDLE
        assert gate.tap(now=10) is False
