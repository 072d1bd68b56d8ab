from __future__ import annotations

import sys
from pathlib import Path

import pytest


# Ensure the repo root (which contains `heatdriver/`) and this directory (for
# `fakes`) are importable even when pytest is invoked with a specific test file path.
_TESTS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _TESTS_DIR.parent
for _path in (_REPO_ROOT, _TESTS_DIR):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from fakes import FakeBackend  # noqa: E402
from heatdriver.controller import SimulationController  # noqa: E402
from heatdriver.models import SimulationParameters  # noqa: E402
from heatdriver.parameters import ParameterStore  # noqa: E402
from heatdriver.scheduler import ManualFrameClock  # noqa: E402
from heatdriver.sinks import RecordingSink  # noqa: E402


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def frame_clock() -> ManualFrameClock:
    return ManualFrameClock()


@pytest.fixture
def store() -> ParameterStore:
    params = SimulationParameters(step_batch_size=100, diffusivity=1.0, step_size=0.001)
    return ParameterStore(parameters=params, max_step_count=500)


@pytest.fixture
def controller(backend, sink, frame_clock, store) -> SimulationController:
    saved: dict[str, str] = {}
    ctrl = SimulationController(backend, sink, frame_clock, store=store, saver=saved.__setitem__)
    ctrl.saved = saved
    return ctrl
