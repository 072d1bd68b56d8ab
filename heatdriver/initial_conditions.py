from __future__ import annotations

import numpy as np

from .models import DEFAULT_DISK_RADIUS, DEFAULT_DISK_TEMPERATURE


def _unit_coordinates(width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    # Both ends of [0, 1] are sampled, so x = 1 and y = 1 occur on the grid.
    x = np.linspace(0.0, 1.0, int(width))
    y = np.linspace(0.0, 1.0, int(height))
    return np.meshgrid(x, y)


def disk_field(
    width: int,
    height: int,
    radius: float = DEFAULT_DISK_RADIUS,
    temperature: float = DEFAULT_DISK_TEMPERATURE,
) -> np.ndarray:
    xx, yy = _unit_coordinates(width, height)
    inside = (xx - 0.5) ** 2 + (yy - 0.5) ** 2 < radius**2
    return np.where(inside, temperature, 0.0).astype(np.float32)


def gaussian_field(width: int, height: int, temperature: float = DEFAULT_DISK_TEMPERATURE) -> np.ndarray:
    xx, yy = _unit_coordinates(width, height)
    return (temperature * np.exp(-10.0 * ((xx - 0.5) ** 2 + (yy - 0.5) ** 2))).astype(np.float32)


INITIAL_CONDITIONS = {
    "disk": disk_field,
    "gaussian": gaussian_field,
}


def build_initial_field(kind: str, width: int, height: int) -> np.ndarray:
    key = kind.strip().lower()
    builder = INITIAL_CONDITIONS.get(key)
    if builder is None:
        allowed = ", ".join(sorted(INITIAL_CONDITIONS))
        raise ValueError(f"Unsupported initial condition '{kind}'. Supported values: {allowed}.")
    return builder(width, height)
