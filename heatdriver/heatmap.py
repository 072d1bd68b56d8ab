from __future__ import annotations

import numpy as np
from matplotlib.colors import hsv_to_rgb


def heatmap_rgba(field: np.ndarray, min_bound: float, max_bound: float) -> np.ndarray:
    """Map temperatures to RGBA bytes, blue at ``min_bound`` through red at ``max_bound``.

    Values outside the bounds saturate to the end colours.
    """
    values = np.asarray(field, dtype=float)
    span = float(max_bound) - float(min_bound)
    if span == 0.0:
        zone = np.where(values > min_bound, 1.0, 0.0)
    else:
        zone = np.clip((values - float(min_bound)) / span, 0.0, 1.0)
    zone = np.nan_to_num(zone, nan=0.0)

    # HSV hue runs 240 degrees (blue) down to 0 (red).
    hsv = np.empty(values.shape + (3,), dtype=float)
    hsv[..., 0] = (240.0 - 240.0 * zone) / 360.0
    hsv[..., 1] = 1.0
    hsv[..., 2] = 1.0
    rgb = hsv_to_rgb(hsv)

    rgba = np.empty(values.shape + (4,), dtype=np.uint8)
    rgba[..., :3] = np.round(rgb * 255.0).astype(np.uint8)
    rgba[..., 3] = 255
    return rgba
