from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field


DEFAULT_WIDTH = 256
DEFAULT_HEIGHT = 256
DEFAULT_STEP_BATCH_SIZE = 100
DEFAULT_DIFFUSIVITY = 1.0
DEFAULT_MIN_BOUND = 0.0
DEFAULT_MAX_BOUND = 400.0
DEFAULT_MAX_STEP_COUNT = 52488
DEFAULT_SAFETY_FACTOR = 0.5
# Initial disk: radius in unit-square coordinates, temperature inside the disk.
DEFAULT_DISK_RADIUS = 0.2
DEFAULT_DISK_TEMPERATURE = 400.0


def default_step_size(width: int, height: int) -> float:
    # safety factor 0.5 with unit diffusivity
    return 1.0 / (4.0 * (width**2 + height**2))


class RunState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class GateState(enum.Enum):
    AWAITING_ISSUE = "awaiting_issue"
    AWAITING_COMPLETION = "awaiting_completion"


@dataclass(frozen=True)
class SimulationParameters:
    step_batch_size: int
    diffusivity: float
    step_size: float
    min_bound: float = DEFAULT_MIN_BOUND
    max_bound: float = DEFAULT_MAX_BOUND

    def __post_init__(self) -> None:
        if int(self.step_batch_size) != self.step_batch_size or self.step_batch_size < 1:
            raise ValueError("step_batch_size must be a positive integer.")
        if not math.isfinite(self.diffusivity) or self.diffusivity <= 0:
            raise ValueError("diffusivity must be positive.")
        if not math.isfinite(self.step_size) or self.step_size <= 0:
            raise ValueError("step_size must be positive.")
        if not (math.isfinite(self.min_bound) and math.isfinite(self.max_bound)):
            raise ValueError("Temperature bounds must be finite.")

    def as_push_args(self) -> tuple[int, float, float, float, float]:
        return (
            int(self.step_batch_size),
            float(self.diffusivity),
            float(self.step_size),
            float(self.min_bound),
            float(self.max_bound),
        )


def default_parameters(width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT) -> SimulationParameters:
    return SimulationParameters(
        step_batch_size=DEFAULT_STEP_BATCH_SIZE,
        diffusivity=DEFAULT_DIFFUSIVITY,
        step_size=default_step_size(width, height),
        min_bound=DEFAULT_MIN_BOUND,
        max_bound=DEFAULT_MAX_BOUND,
    )


@dataclass
class GridGeometry:
    width: int
    height: int
    spacing_x: float
    spacing_y: float

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ValueError("Grid dimensions must be at least 1.")
        if self.spacing_x <= 0 or self.spacing_y <= 0:
            raise ValueError("Grid spacing must be positive.")

    @classmethod
    def from_dimensions(cls, width: int, height: int) -> GridGeometry:
        width, height = int(width), int(height)
        if width < 1 or height < 1:
            raise ValueError("Grid dimensions must be at least 1.")
        return cls(width=width, height=height, spacing_x=1.0 / width, spacing_y=1.0 / height)

    @property
    def shape_label(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class SimulationClock:
    """Step counter and model-time accumulator.

    Simulated time is kept as ``base + steps_in_segment * step_size`` rather
    than a running float sum, so k ticks of batch b at a fixed step size give
    exactly ``k * b * step_size``. A new segment starts whenever the step size
    changes.
    """

    step_count: int = 0
    _time_base: float = field(default=0.0, repr=False)
    _segment_steps: int = field(default=0, repr=False)
    _segment_step_size: float | None = field(default=None, repr=False)

    @property
    def simulated_time(self) -> float:
        if self._segment_step_size is None or self._segment_steps == 0:
            return self._time_base
        return self._time_base + self._segment_steps * self._segment_step_size

    def advance(self, batch: int, step_size: float) -> None:
        if self._segment_step_size != step_size:
            self._time_base = self.simulated_time
            self._segment_steps = 0
            self._segment_step_size = step_size
        self._segment_steps += int(batch)
        self.step_count += int(batch)

    def restart_count(self) -> None:
        self.step_count = 0

    def reset(self) -> None:
        self.step_count = 0
        self._time_base = 0.0
        self._segment_steps = 0
        self._segment_step_size = None


@dataclass(frozen=True)
class Staged:
    """Parse accepted; the backend holds the buffer until it is committed."""

    status: str


@dataclass(frozen=True)
class Rejected:
    message: str


ParseOutcome = Staged | Rejected
