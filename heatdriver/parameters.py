from __future__ import annotations

import logging
import math

from .models import (
    DEFAULT_HEIGHT,
    DEFAULT_MAX_STEP_COUNT,
    DEFAULT_SAFETY_FACTOR,
    DEFAULT_WIDTH,
    GridGeometry,
    SimulationParameters,
    default_parameters,
)

logger = logging.getLogger(__name__)


def clamp_count(value: float) -> int:
    """Floor to an integer and clamp to a minimum of 1."""
    value = float(value)
    if not math.isfinite(value):
        raise ValueError("Counts must be finite numbers.")
    return max(1, int(math.floor(value)))


def dimension_from_spacing(spacing: float) -> int:
    spacing = float(spacing)
    if not spacing > 0 or math.isinf(spacing):
        raise ValueError("Grid spacing must be a positive finite number.")
    return clamp_count(1.0 / spacing)


def spacing_from_dimension(dimension: int) -> float:
    return 1.0 / clamp_count(dimension)


def stable_step_size(
    diffusivity: float,
    width: int,
    height: int,
    safety_factor: float = DEFAULT_SAFETY_FACTOR,
) -> float:
    """Largest explicit step size within the given fraction of the stability bound."""
    if not math.isfinite(diffusivity) or diffusivity <= 0:
        raise ValueError("diffusivity must be positive.")
    if not math.isfinite(safety_factor) or safety_factor <= 0:
        raise ValueError("safety factor must be positive.")
    return safety_factor / (2.0 * diffusivity * (width**2 + height**2))


def step_budget(target_time: float, step_size: float) -> int:
    if not math.isfinite(step_size) or step_size <= 0:
        raise ValueError("step_size must be positive.")
    steps = float(target_time) / float(step_size)
    if not math.isfinite(steps):
        raise ValueError("Target time must be a finite number.")
    return clamp_count(math.ceil(steps))


class ParameterStore:
    """Editable parameter fields plus the last applied parameter set.

    Field edits only touch the form values. ``apply()`` builds a validated
    ``SimulationParameters`` from them and replaces the applied set wholesale;
    the caller is responsible for pushing it to the backend.

    Each geometry axis is a pair (dimension, spacing). Editing one side
    recomputes the other, last writer wins. With ``linked_axes`` the grid is
    square and an edit on either axis is mirrored onto the other.
    """

    def __init__(
        self,
        parameters: SimulationParameters | None = None,
        geometry: GridGeometry | None = None,
        max_step_count: int = DEFAULT_MAX_STEP_COUNT,
        linked_axes: bool = False,
    ):
        self.geometry = geometry or GridGeometry.from_dimensions(DEFAULT_WIDTH, DEFAULT_HEIGHT)
        self.applied = parameters or default_parameters(self.geometry.width, self.geometry.height)
        self.linked_axes = linked_axes

        self.step_batch_size = self.applied.step_batch_size
        self.diffusivity = self.applied.diffusivity
        self.step_size = self.applied.step_size
        self.min_bound = self.applied.min_bound
        self.max_bound = self.applied.max_bound
        self.max_step_count = clamp_count(max_step_count)
        self.applied_max_step_count = self.max_step_count

    # --- geometry pairs ---

    def edit_width(self, value: float) -> int:
        width = clamp_count(value)
        self.geometry.width = width
        self.geometry.spacing_x = 1.0 / width
        if self.linked_axes:
            self.geometry.height = width
            self.geometry.spacing_y = self.geometry.spacing_x
        return width

    def edit_height(self, value: float) -> int:
        height = clamp_count(value)
        self.geometry.height = height
        self.geometry.spacing_y = 1.0 / height
        if self.linked_axes:
            self.geometry.width = height
            self.geometry.spacing_x = self.geometry.spacing_y
        return height

    def edit_spacing_x(self, value: float) -> int:
        width = dimension_from_spacing(value)
        self.geometry.spacing_x = float(value)
        self.geometry.width = width
        if self.linked_axes:
            self.geometry.spacing_y = float(value)
            self.geometry.height = width
        return width

    def edit_spacing_y(self, value: float) -> int:
        height = dimension_from_spacing(value)
        self.geometry.spacing_y = float(value)
        self.geometry.height = height
        if self.linked_axes:
            self.geometry.spacing_x = float(value)
            self.geometry.width = height
        return height

    def set_geometry(self, width: int, height: int) -> GridGeometry:
        self.geometry = GridGeometry.from_dimensions(width, height)
        return self.geometry

    # --- scalar fields ---

    def edit_step_batch_size(self, value: float) -> int:
        self.step_batch_size = clamp_count(value)
        return self.step_batch_size

    def edit_max_step_count(self, value: float) -> int:
        self.max_step_count = clamp_count(value)
        return self.max_step_count

    def edit_diffusivity(self, value: float) -> None:
        self.diffusivity = float(value)

    def edit_step_size(self, value: float) -> None:
        self.step_size = float(value)

    def edit_min_bound(self, value: float) -> None:
        self.min_bound = float(value)

    def edit_max_bound(self, value: float) -> None:
        self.max_bound = float(value)

    # --- one-shot derivations ---

    def auto_step_size(self, safety_factor: float = DEFAULT_SAFETY_FACTOR) -> float:
        self.step_size = stable_step_size(
            self.diffusivity,
            self.geometry.width,
            self.geometry.height,
            safety_factor,
        )
        return self.step_size

    def auto_step_budget(self, target_time: float) -> int:
        self.max_step_count = step_budget(target_time, self.step_size)
        return self.max_step_count

    def build(self) -> SimulationParameters:
        """Validate the form values without touching the applied set."""
        return SimulationParameters(
            step_batch_size=self.step_batch_size,
            diffusivity=self.diffusivity,
            step_size=self.step_size,
            min_bound=self.min_bound,
            max_bound=self.max_bound,
        )

    def apply(self, parameters: SimulationParameters | None = None) -> SimulationParameters:
        self.applied = parameters or self.build()
        self.applied_max_step_count = self.max_step_count
        logger.debug("Applied parameters %s, step budget %d", self.applied, self.applied_max_step_count)
        return self.applied
