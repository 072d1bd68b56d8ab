from __future__ import annotations

import logging
import queue
import threading
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Callable

import numpy as np
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from matplotlib.figure import Figure

from ..backend import NumpyHeatBackend
from ..controller import SimulationController
from ..logging_config import setup_logging
from ..models import Staged
from ..parameters import ParameterStore
from ..paths import EXPORTS_DIR, ROOT_DIR, ensure_data_dirs
from ..scheduler import FrameClock
from ..sinks import UiSink, format_diagnostic, format_geometry
from ..storage import default_export_name
from .theme import (
    ACCENT,
    CANVAS_BG,
    FONT_MONO,
    FONT_SECTION,
    FONT_TITLE,
    FRAME_INTERVAL_MS,
    MESSAGE_FG,
    PANEL_BG,
    SINK_POLL_MS,
    apply_panel_theme,
)

logger = logging.getLogger(__name__)


class TkFrameClock(FrameClock):
    def __init__(self, widget: tk.Misc, interval_ms: int = FRAME_INTERVAL_MS):
        self.widget = widget
        self.interval_ms = interval_ms

    def request_frame(self, callback: Callable[[], None]) -> str:
        return self.widget.after(self.interval_ms, callback)

    def cancel(self, handle: object) -> None:
        self.widget.after_cancel(handle)


class QueueSink(UiSink):
    """Sink safe to publish into from worker threads; the UI drains it with after()."""

    def __init__(self):
        self.events: queue.Queue = queue.Queue()

    def publish(self, message: str) -> None:
        self.events.put(("message", message))

    def publish_diagnostic(self, value: float, simulated_time: float) -> None:
        self.events.put(("message", format_diagnostic(value, simulated_time)))

    def publish_geometry(self, width: int, height: int) -> None:
        self.events.put(("geometry", format_geometry(width, height)))


class BusyDialog(tk.Toplevel):
    def __init__(self, parent: tk.Misc, title: str, message: str):
        super().__init__(parent)
        self.title(title)
        self.configure(bg=PANEL_BG)
        self.resizable(False, False)
        self.transient(parent)
        self.grab_set()
        self.protocol("WM_DELETE_WINDOW", lambda: None)

        body = tk.Frame(self, bg=PANEL_BG)
        body.pack(fill="both", expand=True, padx=14, pady=12)
        tk.Label(body, text=message, bg=PANEL_BG, justify="left").pack(anchor="w", pady=(0, 8))
        self.progress = ttk.Progressbar(body, mode="indeterminate", length=280)
        self.progress.pack(fill="x", expand=True)
        self.progress.start(12)
        self.update_idletasks()

    def close(self) -> None:
        self.progress.stop()
        if self.winfo_exists():
            self.grab_release()
            self.destroy()


class HeatDriverApp(tk.Tk):
    def __init__(self):
        super().__init__()
        self.title("Heat Equation Driver")
        self.geometry("1180x720")
        self.minsize(980, 600)
        apply_panel_theme(self)
        ensure_data_dirs()

        self.sink = QueueSink()
        self.store = ParameterStore()
        self.backend = NumpyHeatBackend(presenter=self.present_frame)
        self.controller = SimulationController(self.backend, self.sink, TkFrameClock(self), store=self.store)
        self.busy = False

        self.vars: dict[str, tk.StringVar] = {}
        self.message_var = tk.StringVar(value="Loading backend...")
        self.shape_var = tk.StringVar(value="")

        root = tk.Frame(self, bg=PANEL_BG)
        root.pack(fill="both", expand=True, padx=8, pady=8)
        left = tk.Frame(root, bg=PANEL_BG, width=320)
        left.pack(side="left", fill="y")
        right = tk.Frame(root, bg=PANEL_BG)
        right.pack(side="left", fill="both", expand=True, padx=(10, 0))

        tk.Label(left, text="Heat Equation Driver", font=FONT_TITLE, fg=ACCENT, bg=PANEL_BG).pack(anchor="w", pady=(0, 8))
        self.build_geometry_panel(left)
        self.build_parameter_panel(left)
        self.build_run_panel(left)

        tk.Label(left, textvariable=self.message_var, bg=PANEL_BG, fg=MESSAGE_FG, justify="left", wraplength=300, font=FONT_MONO).pack(
            anchor="w", pady=(12, 4)
        )

        fig = Figure(figsize=(7.5, 6.5), dpi=100, facecolor=CANVAS_BG)
        self.ax = fig.add_subplot(1, 1, 1)
        self.ax.set_axis_off()
        self.image = self.ax.imshow(np.zeros((2, 2, 4), dtype=np.uint8), origin="lower", interpolation="nearest")
        self.canvas = FigureCanvasTkAgg(fig, master=right)
        self.canvas.get_tk_widget().pack(fill="both", expand=True)

        self.refresh_fields()
        self.protocol("WM_DELETE_WINDOW", self.on_close)
        self.after(SINK_POLL_MS, self.drain_sink)
        self.after(10, self.load_backend)

    # --- layout ---

    def _field(self, parent: tk.Misc, row: int, label: str, key: str, on_change: Callable[[str], None]) -> None:
        tk.Label(parent, text=label, bg=PANEL_BG).grid(row=row, column=0, sticky="w", pady=2)
        var = tk.StringVar()
        entry = tk.Entry(parent, textvariable=var)
        entry.grid(row=row, column=1, sticky="w", pady=2)
        handler = lambda _event=None: self.on_field_change(key, var.get(), on_change)
        entry.bind("<Return>", handler)
        entry.bind("<FocusOut>", handler)
        self.vars[key] = var

    def build_geometry_panel(self, parent: tk.Misc) -> None:
        tk.Label(parent, text="Grid", font=FONT_SECTION, bg=PANEL_BG).pack(anchor="w", pady=(6, 2))
        frame = tk.Frame(parent, bg=PANEL_BG)
        frame.pack(anchor="w", fill="x")
        self._field(frame, 0, "Width", "width", self.store.edit_width)
        self._field(frame, 1, "Height", "height", self.store.edit_height)
        self._field(frame, 2, "Δx", "spacing_x", self.store.edit_spacing_x)
        self._field(frame, 3, "Δy", "spacing_y", self.store.edit_spacing_y)
        buttons = tk.Frame(parent, bg=PANEL_BG)
        buttons.pack(anchor="w", pady=4)
        tk.Button(buttons, text="Send XY", width=12, command=self.reset_with_dimensions).pack(side="left", padx=(0, 4))
        tk.Label(buttons, textvariable=self.shape_var, bg=PANEL_BG, fg=ACCENT).pack(side="left", padx=8)

    def build_parameter_panel(self, parent: tk.Misc) -> None:
        tk.Label(parent, text="Parameters", font=FONT_SECTION, bg=PANEL_BG).pack(anchor="w", pady=(10, 2))
        frame = tk.Frame(parent, bg=PANEL_BG)
        frame.pack(anchor="w", fill="x")
        self._field(frame, 0, "Steps per frame", "step_batch_size", self.store.edit_step_batch_size)
        self._field(frame, 1, "Max steps", "max_step_count", self.store.edit_max_step_count)
        self._field(frame, 2, "κ", "diffusivity", self.store.edit_diffusivity)
        self._field(frame, 3, "Δt", "step_size", self.store.edit_step_size)
        self._field(frame, 4, "Min T", "min_bound", self.store.edit_min_bound)
        self._field(frame, 5, "Max T", "max_bound", self.store.edit_max_bound)
        self.safety_var = tk.StringVar(value="0.5")
        tk.Label(frame, text="Safety factor", bg=PANEL_BG).grid(row=6, column=0, sticky="w", pady=2)
        tk.Entry(frame, textvariable=self.safety_var).grid(row=6, column=1, sticky="w", pady=2)
        self.target_time_var = tk.StringVar(value="0.1")
        tk.Label(frame, text="Target time", bg=PANEL_BG).grid(row=7, column=0, sticky="w", pady=2)
        tk.Entry(frame, textvariable=self.target_time_var).grid(row=7, column=1, sticky="w", pady=2)

        buttons = tk.Frame(parent, bg=PANEL_BG)
        buttons.pack(anchor="w", pady=4)
        tk.Button(buttons, text="Auto Δt", width=10, command=self.auto_step_size).pack(side="left", padx=(0, 4))
        tk.Button(buttons, text="Auto Budget", width=10, command=self.auto_step_budget).pack(side="left", padx=4)
        tk.Button(buttons, text="Update Values", width=12, command=self.apply_parameters).pack(side="left", padx=4)

    def build_run_panel(self, parent: tk.Misc) -> None:
        tk.Label(parent, text="Run", font=FONT_SECTION, bg=PANEL_BG).pack(anchor="w", pady=(10, 2))
        row = tk.Frame(parent, bg=PANEL_BG)
        row.pack(anchor="w", pady=2)
        tk.Button(row, text="Compute", width=12, command=self.start).pack(side="left", padx=(0, 4))
        tk.Button(row, text="Break", width=12, command=self.controller.stop).pack(side="left", padx=4)
        files = tk.Frame(parent, bg=PANEL_BG)
        files.pack(anchor="w", pady=2)
        tk.Button(files, text="Import CSV", width=10, command=self.import_csv).pack(side="left", padx=(0, 4))
        tk.Button(files, text="Export CSV", width=10, command=self.export_csv).pack(side="left", padx=4)
        tk.Button(files, text="Save PNG", width=10, command=self.save_png).pack(side="left", padx=4)

    # --- field synchronization ---

    def refresh_fields(self) -> None:
        store = self.store
        values = {
            "width": store.geometry.width,
            "height": store.geometry.height,
            "spacing_x": f"{store.geometry.spacing_x:g}",
            "spacing_y": f"{store.geometry.spacing_y:g}",
            "step_batch_size": store.step_batch_size,
            "max_step_count": store.max_step_count,
            "diffusivity": f"{store.diffusivity:g}",
            "step_size": f"{store.step_size:g}",
            "min_bound": f"{store.min_bound:g}",
            "max_bound": f"{store.max_bound:g}",
        }
        for key, value in values.items():
            self.vars[key].set(str(value))

    def on_field_change(self, name: str, raw: str, apply_edit: Callable[[float], object]) -> None:
        if self.busy:
            # A reset is reading the form on the worker thread.
            self.refresh_fields()
            return
        try:
            apply_edit(float(raw.strip()))
        except ValueError as exc:
            self.message_var.set(f"'{name}': {exc}" if str(exc) else f"'{name}' must be numeric.")
        self.refresh_fields()

    # --- sink and rendering ---

    def drain_sink(self) -> None:
        while True:
            try:
                kind, payload = self.sink.events.get_nowait()
            except queue.Empty:
                break
            if kind == "geometry":
                self.shape_var.set(payload)
            else:
                self.message_var.set(payload)
        if self.winfo_exists():
            self.after(SINK_POLL_MS, self.drain_sink)

    def present_frame(self, rgba: np.ndarray) -> None:
        self.image.set_data(rgba)
        self.image.set_extent((0, rgba.shape[1], 0, rgba.shape[0]))
        self.canvas.draw_idle()

    # --- background work ---

    def _run_background_task(self, title: str, message: str, task_fn, on_success) -> None:
        if self.busy:
            return
        self.busy = True
        dialog = BusyDialog(self, title=title, message=message)
        result_queue: queue.Queue = queue.Queue()

        def worker() -> None:
            try:
                value = task_fn()
            except Exception as exc:
                logger.exception("%s failed", title)
                result_queue.put(("error", exc))
            else:
                result_queue.put(("ok", value))

        threading.Thread(target=worker, daemon=True).start()

        def poll() -> None:
            try:
                kind, payload = result_queue.get_nowait()
            except queue.Empty:
                if dialog.winfo_exists():
                    self.after(100, poll)
                return

            dialog.close()
            self.busy = False
            if kind == "error":
                messagebox.showerror(f"{title} Failed", str(payload), parent=self)
                return
            on_success(payload)

        self.after(100, poll)

    def _after_reset(self, _payload=None) -> None:
        self.refresh_fields()
        self.controller.render_once()

    def load_backend(self) -> None:
        def on_success(_payload) -> None:
            self._after_reset()
            self.message_var.set("Backend ready.")

        # Queued ticks are cancelled here, on the UI thread, before the worker touches the backend.
        self.controller.scheduler.halt()
        self._run_background_task(
            title="Loading Backend",
            message="Allocating the simulation grid...",
            task_fn=self.controller.initialize,
            on_success=on_success,
        )

    def reset_with_dimensions(self) -> None:
        if self.busy:
            return
        try:
            self.store.build()
        except ValueError as exc:
            messagebox.showerror("Reset Failed", str(exc), parent=self)
            return
        width, height = self.store.geometry.width, self.store.geometry.height
        self.controller.scheduler.halt()
        self._run_background_task(
            title="Resetting Grid",
            message=f"Reallocating a {width}x{height} grid...",
            task_fn=lambda: self.controller.reset_with_dimensions(width, height),
            on_success=self._after_reset,
        )

    def import_csv(self) -> None:
        path = filedialog.askopenfilename(
            parent=self,
            title="Import Grid CSV",
            initialdir=str(EXPORTS_DIR),
            filetypes=[("CSV files", "*.csv"), ("All files", "*.*")],
        )
        if not path or self.busy:
            return
        # Parsing leaves a running simulation alone; only an accepted grid halts it.
        self._run_background_task(
            title="Importing CSV",
            message=f"Reading grid state from:\n{path}",
            task_fn=lambda: self.controller.stage_csv_file(path),
            on_success=self._commit_import,
        )

    def _commit_import(self, outcome) -> None:
        if not isinstance(outcome, Staged):
            return
        try:
            self.store.build()
        except ValueError as exc:
            messagebox.showerror("Import Failed", str(exc), parent=self)
            return
        self.controller.scheduler.halt()
        self._run_background_task(
            title="Importing CSV",
            message="Loading the imported grid...",
            task_fn=self.controller.commit_csv_import,
            on_success=self._after_reset,
        )

    def export_csv(self) -> None:
        path = filedialog.asksaveasfilename(
            parent=self,
            title="Export Grid CSV",
            initialdir=str(EXPORTS_DIR),
            initialfile=default_export_name(".csv"),
            defaultextension=".csv",
            filetypes=[("CSV files", "*.csv")],
        )
        if not path:
            return
        self._run_background_task(
            title="Exporting CSV",
            message="Reading back the grid state...",
            task_fn=lambda: self.controller.export_csv(path),
            on_success=lambda _text: self.message_var.set(f"Exported state to {path}"),
        )

    def save_png(self) -> None:
        path = filedialog.asksaveasfilename(
            parent=self,
            title="Save Heatmap PNG",
            initialdir=str(EXPORTS_DIR),
            initialfile=default_export_name(".png"),
            defaultextension=".png",
            filetypes=[("PNG images", "*.png")],
        )
        if not path:
            return
        try:
            saved = self.controller.save_png(path)
        except Exception as exc:
            messagebox.showerror("Save Failed", str(exc), parent=self)
            return
        self.message_var.set(f"Saved heatmap to {saved}")

    # --- actions ---

    def start(self) -> None:
        if self.busy:
            return
        self.controller.start()

    def apply_parameters(self) -> None:
        if self.busy:
            return
        try:
            params = self.controller.apply_parameters()
        except Exception as exc:
            messagebox.showerror("Update Failed", str(exc), parent=self)
            return
        self.message_var.set(f"Applied {params.step_batch_size} steps/frame, Δt={params.step_size:g}")

    def auto_step_size(self) -> None:
        if self.busy:
            return
        try:
            self.controller.auto_step_size(float(self.safety_var.get()))
        except ValueError as exc:
            messagebox.showerror("Auto Δt Failed", str(exc), parent=self)
            return
        self.refresh_fields()

    def auto_step_budget(self) -> None:
        if self.busy:
            return
        try:
            self.controller.auto_step_budget(float(self.target_time_var.get()))
        except ValueError as exc:
            messagebox.showerror("Auto Budget Failed", str(exc), parent=self)
            return
        self.refresh_fields()

    def on_close(self) -> None:
        self.controller.scheduler.halt()
        self.backend.close()
        self.destroy()


def run_app() -> None:
    setup_logging()
    logger.info("Workspace: %s", ROOT_DIR)
    app = HeatDriverApp()
    app.mainloop()
