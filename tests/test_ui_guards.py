from __future__ import annotations

from types import SimpleNamespace

import pytest

pytest.importorskip("tkinter")

from fakes import FakeBackend  # noqa: E402
from heatdriver.controller import SimulationController  # noqa: E402
from heatdriver.scheduler import ManualFrameClock  # noqa: E402
from heatdriver.sinks import RecordingSink  # noqa: E402
from heatdriver.ui.main_app import HeatDriverApp  # noqa: E402


def _busy_app() -> SimpleNamespace:
    backend = FakeBackend()
    controller = SimulationController(backend, RecordingSink(), ManualFrameClock())
    refreshed: list[bool] = []
    return SimpleNamespace(
        busy=True,
        backend=backend,
        controller=controller,
        store=controller.store,
        refresh_fields=lambda: refreshed.append(True),
        refreshed=refreshed,
    )


def test_parameter_actions_wait_for_background_reset() -> None:
    app = _busy_app()
    applied = app.store.applied
    step_size = app.store.step_size

    HeatDriverApp.apply_parameters(app)
    HeatDriverApp.auto_step_size(app)
    HeatDriverApp.auto_step_budget(app)
    HeatDriverApp.reset_with_dimensions(app)
    HeatDriverApp.start(app)

    assert app.backend.calls == []
    assert app.store.applied is applied
    assert app.store.step_size == step_size
    assert not app.controller.is_running


def test_field_edits_are_dropped_while_busy() -> None:
    app = _busy_app()

    HeatDriverApp.on_field_change(app, "width", "12", app.store.edit_width)

    assert app.store.geometry.width == 256
    assert app.refreshed == [True]
