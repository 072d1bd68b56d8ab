"""Interactive 2D heat-equation driver package."""

from .controller import SimulationController
from .parameters import ParameterStore
from .readback import ReadbackGate
from .reset import StateResetProtocol
from .scheduler import FrameScheduler, ManualFrameClock, SimulationSession

__all__ = [
    "FrameScheduler",
    "ManualFrameClock",
    "ParameterStore",
    "ReadbackGate",
    "SimulationController",
    "SimulationSession",
    "StateResetProtocol",
]
