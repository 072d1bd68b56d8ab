from __future__ import annotations

import abc
import itertools
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from .models import DEFAULT_MAX_STEP_COUNT, RunState, SimulationClock, SimulationParameters, default_parameters
from .readback import ReadbackGate
from .sinks import UiSink

logger = logging.getLogger(__name__)


class FrameClock(abc.ABC):
    """Schedules a callback for the next frame opportunity."""

    @abc.abstractmethod
    def request_frame(self, callback: Callable[[], None]) -> object: ...

    @abc.abstractmethod
    def cancel(self, handle: object) -> None: ...


class ManualFrameClock(FrameClock):
    """Frame clock driven by the caller, one queued callback per ``advance()``."""

    def __init__(self):
        self._queue: OrderedDict[int, Callable[[], None]] = OrderedDict()
        self._ids = itertools.count(1)
        self.frames_run = 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        self._queue[handle] = callback
        return handle

    def cancel(self, handle: object) -> None:
        self._queue.pop(handle, None)

    def advance(self) -> bool:
        if not self._queue:
            return False
        _, callback = self._queue.popitem(last=False)
        self.frames_run += 1
        callback()
        return True

    def run_until_idle(self, max_frames: int | None = None) -> int:
        count = 0
        while self._queue and (max_frames is None or count < max_frames):
            self.advance()
            count += 1
        return count


@dataclass
class SimulationSession:
    parameters: SimulationParameters = field(default_factory=default_parameters)
    max_step_count: int = DEFAULT_MAX_STEP_COUNT
    run_state: RunState = RunState.IDLE
    clock: SimulationClock = field(default_factory=SimulationClock)
    gate: ReadbackGate = field(default_factory=ReadbackGate)

    def reset(self) -> None:
        self.run_state = RunState.IDLE
        self.clock.reset()
        self.gate.reset()


class FrameScheduler:
    """Cooperative stepping loop: one batch of solver steps and one render per frame."""

    def __init__(self, backend, session: SimulationSession, sink: UiSink, clock: FrameClock):
        self.backend = backend
        self.session = session
        self.sink = sink
        self.clock = clock
        self._pending: object | None = None

    @property
    def run_state(self) -> RunState:
        return self.session.run_state

    @property
    def tick_pending(self) -> bool:
        return self._pending is not None

    def start(self) -> bool:
        session = self.session
        if session.run_state is RunState.RUNNING:
            logger.debug("start() ignored, already running")
            return False
        session.clock.restart_count()
        session.run_state = RunState.RUNNING
        if self._pending is None:
            self._pending = self.clock.request_frame(self.tick)
        logger.info("Run started, step budget %d", session.max_step_count)
        return True

    def stop(self) -> None:
        if self.session.run_state is RunState.RUNNING:
            self.session.run_state = RunState.STOPPING
            logger.info("Stop requested at step %d", self.session.clock.step_count)

    def halt(self) -> None:
        """Stop and drop any queued tick; used before backend state is torn down."""
        self.session.run_state = RunState.STOPPING
        if self._pending is not None:
            self.clock.cancel(self._pending)
            self._pending = None
        self.session.run_state = RunState.IDLE

    def tick(self) -> None:
        self._pending = None
        session = self.session
        if session.run_state is RunState.IDLE:
            return

        batch = session.parameters.step_batch_size
        step_size = session.parameters.step_size

        self.backend.step(batch)
        session.gate.try_issue(self.backend)
        self.backend.render()

        session.clock.advance(batch, step_size)

        value = session.gate.poll(self.backend)
        if value is not None:
            self.sink.publish_diagnostic(value, session.clock.simulated_time)

        if session.clock.step_count < session.max_step_count and session.run_state is not RunState.STOPPING:
            self._pending = self.clock.request_frame(self.tick)
        else:
            session.run_state = RunState.IDLE
            logger.info(
                "Run idle at step %d, simulated time %g",
                session.clock.step_count,
                session.clock.simulated_time,
            )
