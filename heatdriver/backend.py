from __future__ import annotations

import abc
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

import numpy as np

from .codec import SUCCESS_STATUS, CsvGridError, format_csv_grid, parse_csv_grid
from .heatmap import heatmap_rgba
from .initial_conditions import build_initial_field
from .models import DEFAULT_HEIGHT, DEFAULT_WIDTH, SimulationParameters, default_parameters
from .solver import advance, build_laplacian, total_energy

logger = logging.getLogger(__name__)


class BackendStateError(RuntimeError):
    pass


class Backend(abc.ABC):
    """Operations the driver needs from the compute backend.

    Methods returning ``Future`` are asynchronous: the driver waits on them only
    at reset, import and export time, never inside a tick. Everything else is
    synchronous and non-blocking.
    """

    @abc.abstractmethod
    def step(self, batch_size: int) -> None: ...

    @abc.abstractmethod
    def render(self) -> None: ...

    @abc.abstractmethod
    def push_parameters(
        self,
        batch: int,
        diffusivity: float,
        step_size: float,
        min_bound: float,
        max_bound: float,
    ) -> None: ...

    @abc.abstractmethod
    def request_diagnostic(self) -> None: ...

    @abc.abstractmethod
    def is_diagnostic_ready(self) -> bool: ...

    @abc.abstractmethod
    def fetch_diagnostic(self) -> float: ...

    @abc.abstractmethod
    def discard_state(self) -> None: ...

    @abc.abstractmethod
    def reinit_with_dimensions(self, width: int, height: int) -> Future: ...

    @abc.abstractmethod
    def parse_buffer(self, text: str) -> str: ...

    @abc.abstractmethod
    def commit_parsed_buffer(self) -> Future: ...

    @abc.abstractmethod
    def current_width(self) -> int: ...

    @abc.abstractmethod
    def current_height(self) -> int: ...

    @abc.abstractmethod
    def fetch_initial_diagnostic(self) -> Future: ...

    @abc.abstractmethod
    def serialize_to_text(self) -> Future: ...


class _GridState:
    def __init__(self, field: np.ndarray, parameters: SimulationParameters):
        self.field = field
        self.parameters = parameters
        self.laplacian = build_laplacian(field.shape[1], field.shape[0])

    @property
    def width(self) -> int:
        return int(self.field.shape[1])

    @property
    def height(self) -> int:
        return int(self.field.shape[0])


class NumpyHeatBackend(Backend):
    """In-process backend: numpy/scipy heat kernel behind the async contract.

    Asynchronous work runs on a single worker thread, so commits, readbacks and
    exports complete in submission order. Readbacks copy the field when they are
    requested, matching a GPU copy queued behind the step that preceded it.
    """

    def __init__(
        self,
        initial_condition: str = "disk",
        presenter: Callable[[np.ndarray], None] | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.initial_condition = initial_condition
        self.presenter = presenter
        self.last_frame: np.ndarray | None = None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="heat-backend")
        self._state: _GridState | None = None
        self._staged: np.ndarray | None = None
        self._pending_readback: Future | None = None
        self._ready_value: float | None = None

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    def _require_state(self) -> _GridState:
        if self._state is None:
            raise BackendStateError("Can not do! Uninitialized")
        return self._state

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    # --- stepping and presentation ---

    def step(self, batch_size: int) -> None:
        state = self._require_state()
        p = state.parameters
        state.field = advance(state.field, state.laplacian, p.diffusivity, p.step_size, batch_size)

    def render(self) -> None:
        state = self._require_state()
        frame = heatmap_rgba(state.field, state.parameters.min_bound, state.parameters.max_bound)
        self.last_frame = frame
        if self.presenter is not None:
            self.presenter(frame)

    def push_parameters(
        self,
        batch: int,
        diffusivity: float,
        step_size: float,
        min_bound: float,
        max_bound: float,
    ) -> None:
        state = self._require_state()
        state.parameters = SimulationParameters(
            step_batch_size=int(batch),
            diffusivity=float(diffusivity),
            step_size=float(step_size),
            min_bound=float(min_bound),
            max_bound=float(max_bound),
        )
        logger.info("Backend parameters replaced: %s", state.parameters)

    @property
    def parameters(self) -> SimulationParameters:
        return self._require_state().parameters

    def field_snapshot(self) -> np.ndarray:
        return self._require_state().field.copy()

    # --- diagnostic readback ---

    def request_diagnostic(self) -> None:
        snapshot = self._require_state().field.copy()
        self._ready_value = None
        self._pending_readback = self._executor.submit(total_energy, snapshot)

    def is_diagnostic_ready(self) -> bool:
        pending = self._pending_readback
        if pending is None or not pending.done():
            return False
        self._pending_readback = None
        exc = pending.exception()
        if exc is not None:
            # The request is dropped; the caller keeps waiting for it.
            logger.warning("Diagnostic readback failed: %s", exc)
            return False
        self._ready_value = float(pending.result())
        return True

    def fetch_diagnostic(self) -> float:
        if self._ready_value is None:
            raise BackendStateError("No diagnostic value is ready to fetch.")
        value, self._ready_value = self._ready_value, None
        return value

    # --- lifecycle ---

    def discard_state(self) -> None:
        if self._pending_readback is not None:
            self._pending_readback.cancel()
        self._state = None
        self._pending_readback = None
        self._ready_value = None

    def _install(self, field: np.ndarray) -> None:
        height, width = field.shape
        self._state = _GridState(field, default_parameters(width, height))
        logger.info("Backend state allocated for a %dx%d grid", width, height)

    def reinit_with_dimensions(self, width: int, height: int) -> Future:
        width, height = int(width), int(height)
        if width < 1 or height < 1:
            raise ValueError("Grid dimensions must be at least 1.")

        def allocate() -> None:
            self._install(build_initial_field(self.initial_condition, width, height))

        return self._executor.submit(allocate)

    def initialize(self) -> Future:
        return self.reinit_with_dimensions(DEFAULT_WIDTH, DEFAULT_HEIGHT)

    # --- CSV state ---

    def parse_buffer(self, text: str) -> str:
        try:
            grid, _, _ = parse_csv_grid(text)
        except CsvGridError as exc:
            return str(exc)
        self._staged = grid
        return SUCCESS_STATUS

    def commit_parsed_buffer(self) -> Future:
        staged, self._staged = self._staged, None
        if staged is None:
            future: Future = Future()
            future.set_exception(BackendStateError("tried to load from csv buffer but it was empty"))
            return future
        return self._executor.submit(self._install, staged)

    def current_width(self) -> int:
        return self._require_state().width

    def current_height(self) -> int:
        return self._require_state().height

    def fetch_initial_diagnostic(self) -> Future:
        return self._executor.submit(total_energy, self.field_snapshot())

    def serialize_to_text(self) -> Future:
        return self._executor.submit(format_csv_grid, self.field_snapshot())
