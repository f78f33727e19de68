from .gate import ActivationGate, GateState

__all__ = ["ActivationGate", "GateState"]
