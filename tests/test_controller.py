from __future__ import annotations

import numpy as np
import pytest

from heatdriver.backend import NumpyHeatBackend
from heatdriver.controller import SimulationController
from heatdriver.models import RunState
from heatdriver.parameters import ParameterStore
from heatdriver.scheduler import ManualFrameClock
from heatdriver.sinks import RecordingSink
from heatdriver.storage import resolve_export_path, slugify_name


def test_save_png_requires_a_frame(controller) -> None:
    with pytest.raises(ValueError):
        controller.save_png("frame.png")
    assert controller.backend.count("render") == 1


def test_apply_parameters_updates_session(controller, backend, store) -> None:
    store.edit_max_step_count(300)
    store.edit_min_bound(-10)
    params = controller.apply_parameters()

    assert controller.session.max_step_count == 300
    assert controller.session.parameters is params
    assert backend.calls[-1] == ("push_parameters", 100, 1.0, 0.001, -10.0, 400.0)


def test_full_run_against_numpy_backend() -> None:
    backend = NumpyHeatBackend()
    sink = RecordingSink()
    clock = ManualFrameClock()
    store = ParameterStore(max_step_count=40)
    store.edit_width(16)
    store.edit_height(16)
    store.edit_step_batch_size(10)
    try:
        controller = SimulationController(backend, sink, clock, store=store)
        controller.initialize()
        controller.auto_step_size()
        controller.apply_parameters()
        initial = float(np.sum(backend.field_snapshot(), dtype=np.float64))

        controller.start()
        frames = clock.run_until_idle()

        assert frames == 4
        assert controller.run_state is RunState.IDLE
        assert sink.of_kind("geometry") == [(16, 16)]
        assert backend.last_frame.shape == (16, 16, 4)
        for value, _ in sink.of_kind("diagnostic"):
            assert value == pytest.approx(initial, rel=1e-5)
    finally:
        backend.close()


def test_resolve_export_path(tmp_path) -> None:
    nested = tmp_path / "a" / "b.csv"
    assert resolve_export_path(nested) == nested
    assert nested.parent.is_dir()
    assert slugify_name("my state (1).csv") == "my_state_1_.csv"
    assert slugify_name("///") == "item"
