from __future__ import annotations

import argparse
import logging
import sys

from .backend import NumpyHeatBackend
from .commands import HELP_TEXT, execute
from .controller import SimulationController
from .initial_conditions import INITIAL_CONDITIONS
from .logging_config import setup_logging
from .models import Rejected
from .parameters import ParameterStore
from .scheduler import ManualFrameClock
from .sinks import LoggingSink

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="heatdriver",
        description="Interactive 2D heat-equation driver.",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None, help="Defaults to data/logs/heatdriver.log.")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Run a headless simulation to its step budget.")
    run.add_argument("--width", type=float, default=None)
    run.add_argument("--height", type=float, default=None)
    run.add_argument("--import", dest="import_path", default=None, help="CSV grid to start from.")
    run.add_argument("--initial", choices=sorted(INITIAL_CONDITIONS), default="disk")
    run.add_argument("--batch", type=float, default=None, help="Solver steps per frame.")
    run.add_argument("--kappa", type=float, default=None, help="Diffusivity.")
    run.add_argument("--dt", type=float, default=None, help="Step size; omit for the auto step size.")
    run.add_argument("--min-t", type=float, default=None)
    run.add_argument("--max-t", type=float, default=None)
    run.add_argument("--max-steps", type=float, default=None)
    run.add_argument("--target-time", type=float, default=None, help="Derive the step budget from a model time.")
    run.add_argument("--export", default=None, help="Write the final state as CSV.")
    run.add_argument("--png", default=None, help="Write the final frame as PNG.")

    sub.add_parser("repl", help="Read console commands from stdin.")
    sub.add_parser("gui", help="Open the tkinter front end.")
    return parser


def _configure_store(store: ParameterStore, args: argparse.Namespace) -> None:
    if args.width is not None:
        store.edit_width(args.width)
    if args.height is not None:
        store.edit_height(args.height)
    if args.batch is not None:
        store.edit_step_batch_size(args.batch)
    if args.kappa is not None:
        store.edit_diffusivity(args.kappa)
    if args.min_t is not None:
        store.edit_min_bound(args.min_t)
    if args.max_t is not None:
        store.edit_max_bound(args.max_t)
    if args.dt is not None:
        store.edit_step_size(args.dt)
    else:
        store.auto_step_size()
    if args.max_steps is not None:
        store.edit_max_step_count(args.max_steps)
    if args.target_time is not None:
        store.auto_step_budget(args.target_time)


def run_headless(args: argparse.Namespace) -> int:
    store = ParameterStore()
    _configure_store(store, args)
    backend = NumpyHeatBackend(initial_condition=args.initial)
    clock = ManualFrameClock()
    sink = LoggingSink()
    controller = SimulationController(backend, sink, clock, store=store)
    try:
        if not args.import_path:
            controller.initialize()
        else:
            outcome = controller.import_csv_file(args.import_path)
            if outcome is None or isinstance(outcome, Rejected):
                logger.error("Import failed: %s", sink.last_message)
                return 2
            # Re-derive the step size for the imported geometry unless one was given.
            if args.dt is None:
                store.auto_step_size()
                controller.apply_parameters()
        controller.start()
        frames = clock.run_until_idle()
        logger.info(
            "Finished after %d frames: %d steps, simulated time %g",
            frames,
            controller.session.clock.step_count,
            controller.session.clock.simulated_time,
        )
        if args.export:
            controller.export_csv(args.export)
        if args.png:
            controller.save_png(args.png)
    finally:
        backend.close()
    return 0


def run_repl() -> int:
    backend = NumpyHeatBackend()
    clock = ManualFrameClock()
    controller = SimulationController(backend, LoggingSink(), clock)
    try:
        controller.initialize()
        print(HELP_TEXT)
        for line in sys.stdin:
            if line.strip().lower() in {"exit", "quit"}:
                break
            print(execute(controller, line))
            # No frame source in a console: drain the run before the next prompt.
            clock.run_until_idle()
    finally:
        backend.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)
    if args.command == "run":
        return run_headless(args)
    if args.command == "repl":
        return run_repl()
    from .ui.main_app import run_app

    run_app()
    return 0
