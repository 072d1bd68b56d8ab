from __future__ import annotations

import shlex

from .controller import SimulationController
from .models import DEFAULT_SAFETY_FACTOR, Rejected

# set <name> <value>; several aliases per field
_SETTERS = {
    "kappa": "edit_diffusivity",
    "diffusivity": "edit_diffusivity",
    "dt": "edit_step_size",
    "delta_t": "edit_step_size",
    "min_t": "edit_min_bound",
    "max_t": "edit_max_bound",
    "iter_quant": "edit_step_batch_size",
    "batch": "edit_step_batch_size",
    "n_add": "edit_step_batch_size",
    "max_n": "edit_max_step_count",
}

HELP_TEXT = (
    "commands: start | stop | status | set <name> <value> | reset <width> <height> | "
    "import <path.csv> | export <file> | auto_dt [safety] | auto_budget <time>\n"
    f"set names: {', '.join(sorted(_SETTERS))}"
)


def _status(controller: SimulationController) -> str:
    session = controller.session
    geometry = controller.store.geometry
    return (
        f"state {session.run_state.value}, grid {geometry.shape_label}, "
        f"step {session.clock.step_count}/{session.max_step_count}, "
        f"time {session.clock.simulated_time:g}, params {session.parameters}"
    )


def execute(controller: SimulationController, line: str) -> str:
    """Run one console command and return the text to show the user."""
    try:
        words = shlex.split(line)
    except ValueError as exc:
        return f"could not parse command: {exc}"
    if not words:
        return "received empty command"

    command, args = words[0].lower(), words[1:]
    try:
        if command == "start":
            return "started" if controller.start() else "already running"
        if command == "stop":
            controller.stop()
            return "stopping"
        if command == "status":
            return _status(controller)
        if command in {"help", "?"}:
            return HELP_TEXT
        if command == "set":
            if len(args) != 2:
                return "usage: set <name> <value>"
            setter = _SETTERS.get(args[0].lower())
            if setter is None:
                return f"unknown parameter '{args[0]}'"
            getattr(controller.store, setter)(float(args[1]))
            params = controller.apply_parameters()
            return f"applied {params}"
        if command == "reset":
            if len(args) != 2:
                return "usage: reset <width> <height>"
            width = controller.store.edit_width(float(args[0]))
            height = controller.store.edit_height(float(args[1]))
            controller.reset_with_dimensions(width, height)
            return f"grid reset to {width}x{height}"
        if command == "import":
            if len(args) != 1:
                return "usage: import <path.csv>"
            outcome = controller.import_csv_file(args[0])
            if outcome is None:
                return "import skipped"
            if isinstance(outcome, Rejected):
                return outcome.message
            return f"imported {controller.store.geometry.shape_label} grid"
        if command == "export":
            if len(args) != 1:
                return "usage: export <file>"
            text = controller.export_csv(args[0])
            return f"exported {len(text.splitlines())} rows"
        if command == "auto_dt":
            safety = float(args[0]) if args else DEFAULT_SAFETY_FACTOR
            step_size = controller.auto_step_size(safety)
            controller.apply_parameters()
            return f"step size set to {step_size:g}"
        if command == "auto_budget":
            if len(args) != 1:
                return "usage: auto_budget <time>"
            budget = controller.auto_step_budget(float(args[0]))
            controller.apply_parameters()
            return f"step budget set to {budget}"
    except ValueError as exc:
        return str(exc)
    return f"unknown command '{command}'"
