from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from . import codec
from .models import DEFAULT_SAFETY_FACTOR, ParseOutcome, RunState, SimulationParameters
from .parameters import ParameterStore
from .reset import StateResetProtocol
from .scheduler import FrameClock, FrameScheduler, SimulationSession
from .sinks import UiSink
from .storage import save_heatmap_png, save_text_export

logger = logging.getLogger(__name__)


class SimulationController:
    """User actions (run, stop, apply, reset, import, export) wired to the driver components."""

    def __init__(
        self,
        backend,
        sink: UiSink,
        frame_clock: FrameClock,
        store: ParameterStore | None = None,
        saver: Callable[[str, str], object] | None = None,
    ):
        self.backend = backend
        self.sink = sink
        self.store = store or ParameterStore()
        self.saver = saver or save_text_export
        self.session = SimulationSession(
            parameters=self.store.applied,
            max_step_count=self.store.applied_max_step_count,
        )
        self.scheduler = FrameScheduler(backend, self.session, sink, frame_clock)
        self.resets = StateResetProtocol(backend, self.store, self.session, self.scheduler, sink)

    @property
    def run_state(self) -> RunState:
        return self.session.run_state

    @property
    def is_running(self) -> bool:
        return self.session.run_state is not RunState.IDLE

    def initialize(self) -> None:
        """Allocate backend state for the store's current geometry."""
        geometry = self.store.geometry
        self.resets.reset_with_dimensions(geometry.width, geometry.height)

    def start(self) -> bool:
        return self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    def apply_parameters(self) -> SimulationParameters:
        params = self.store.apply()
        self.backend.push_parameters(*params.as_push_args())
        self.session.parameters = params
        self.session.max_step_count = self.store.applied_max_step_count
        return params

    def reset_with_dimensions(self, width: int | None = None, height: int | None = None) -> None:
        geometry = self.store.geometry
        self.resets.reset_with_dimensions(
            geometry.width if width is None else width,
            geometry.height if height is None else height,
        )

    def import_csv_text(self, text: str) -> ParseOutcome:
        return self.resets.reset_from_buffer(text)

    def import_csv_file(self, path: str | Path | None) -> ParseOutcome | None:
        return self.resets.reset_from_file(path)

    def stage_csv_file(self, path: str | Path | None) -> ParseOutcome | None:
        """First half of an import: read and parse, leaving the running state alone."""
        return self.resets.stage_file(path)

    def commit_csv_import(self) -> None:
        self.resets.commit_staged()

    def export_csv(self, filename: str) -> str:
        return codec.export_state(self.backend, self.saver, filename)

    def auto_step_size(self, safety_factor: float = DEFAULT_SAFETY_FACTOR) -> float:
        return self.store.auto_step_size(safety_factor)

    def auto_step_budget(self, target_time: float) -> int:
        return self.store.auto_step_budget(target_time)

    def render_once(self) -> None:
        self.backend.render()

    def save_png(self, filename: str | Path) -> Path:
        frame = getattr(self.backend, "last_frame", None)
        if frame is None:
            self.backend.render()
            frame = getattr(self.backend, "last_frame", None)
        if frame is None:
            raise ValueError("The backend has not rendered a frame yet.")
        path = save_heatmap_png(filename, frame)
        logger.info("Saved heatmap to %s", path)
        return path
