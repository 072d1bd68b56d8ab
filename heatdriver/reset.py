from __future__ import annotations

import logging
from pathlib import Path

from . import codec
from .models import GridGeometry, ParseOutcome, Rejected, SimulationParameters, Staged
from .parameters import ParameterStore
from .scheduler import FrameScheduler, SimulationSession
from .sinks import UiSink

logger = logging.getLogger(__name__)

UNSUPPORTED_FILE_MESSAGE = "Unsupported file type. Please select a CSV file."


class StateResetProtocol:
    """Tears down and rebuilds backend state from dimensions or an imported buffer.

    Every successful reset ends with the geometry replaced, the parameters
    pushed, the clock zeroed, the run state IDLE and the readback gate ready to
    issue. The scheduler is halted before the backend is touched, and the
    asynchronous backend calls are waited on before returning, so no tick can
    run against a half-built state.
    """

    def __init__(
        self,
        backend,
        store: ParameterStore,
        session: SimulationSession,
        scheduler: FrameScheduler,
        sink: UiSink,
    ):
        self.backend = backend
        self.store = store
        self.session = session
        self.scheduler = scheduler
        self.sink = sink

    def _finish(self, params: SimulationParameters) -> None:
        self.store.apply(params)
        self.backend.push_parameters(*params.as_push_args())
        self.session.parameters = params
        self.session.max_step_count = self.store.applied_max_step_count
        self.session.reset()

    def reset_with_dimensions(self, width: int, height: int) -> None:
        # Validate everything before teardown; a bad form value must leave the old state running.
        params = self.store.build()
        geometry = GridGeometry.from_dimensions(width, height)

        self.scheduler.halt()
        self.backend.discard_state()
        self.backend.reinit_with_dimensions(geometry.width, geometry.height).result()
        self.store.set_geometry(geometry.width, geometry.height)
        self._finish(params)
        logger.info("State reset to a %s grid", geometry.shape_label)
        self.sink.publish_geometry(geometry.width, geometry.height)

    def stage_buffer(self, text: str) -> ParseOutcome:
        """Parse step only; a rejected buffer is reported and nothing else changes."""
        outcome = codec.stage(self.backend, text)
        if isinstance(outcome, Rejected):
            self.sink.publish(outcome.message)
        return outcome

    def stage_file(self, path: str | Path | None) -> ParseOutcome | None:
        if not path:
            return None
        path = Path(path)
        if path.suffix.lower() != ".csv":
            self.sink.publish(UNSUPPORTED_FILE_MESSAGE)
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.sink.publish(f"Could not read {path.name}: {exc}")
            return None
        return self.stage_buffer(text)

    def commit_staged(self) -> None:
        """Replace the backend state with the buffer accepted by the last stage call."""
        params = self.store.build()

        self.scheduler.halt()
        self.backend.discard_state()
        self.backend.commit_parsed_buffer().result()
        # The imported buffer decides the geometry.
        geometry = self.store.set_geometry(self.backend.current_width(), self.backend.current_height())
        self._finish(params)
        energy = float(self.backend.fetch_initial_diagnostic().result())
        logger.info("Imported a %s grid, total energy %g", geometry.shape_label, energy)
        self.sink.publish_diagnostic(energy, self.session.clock.simulated_time)
        self.sink.publish_geometry(geometry.width, geometry.height)

    def reset_from_buffer(self, text: str) -> ParseOutcome:
        outcome = self.stage_buffer(text)
        if isinstance(outcome, Staged):
            self.commit_staged()
        return outcome

    def reset_from_file(self, path: str | Path | None) -> ParseOutcome | None:
        outcome = self.stage_file(path)
        if isinstance(outcome, Staged):
            self.commit_staged()
        return outcome
