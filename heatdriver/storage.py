from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

import numpy as np
from matplotlib import image as mpl_image

from .paths import EXPORTS_DIR, ensure_data_dirs


def slugify_name(name: str, fallback: str = "item") -> str:
    value = re.sub(r"[^a-zA-Z0-9_.-]+", "_", name.strip()).strip("_")
    return value or fallback


def default_export_name(suffix: str = ".csv") -> str:
    return f"heat_state_{datetime.now().strftime('%Y%m%d_%H%M%S')}{suffix}"


def resolve_export_path(filename: str | Path) -> Path:
    """Bare file names land in the exports directory; paths are used as given."""
    path = Path(filename)
    if path.parent == Path("."):
        ensure_data_dirs()
        return EXPORTS_DIR / slugify_name(path.name, default_export_name(path.suffix or ".csv"))
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def save_text_export(filename: str | Path, text: str) -> Path:
    path = resolve_export_path(filename)
    path.write_text(text, encoding="utf-8")
    return path


def save_heatmap_png(filename: str | Path, rgba: np.ndarray) -> Path:
    frame = np.asarray(rgba)
    if frame.ndim != 3 or frame.shape[2] != 4:
        raise ValueError("Heatmap frame must have shape [y, x, 4].")
    path = resolve_export_path(filename)
    mpl_image.imsave(str(path), frame)
    return path
