from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np

from outline2fourier.types import Polygon2D

# BGR
LAYER_COLORS = {
    "knots": (0, 0, 255),
    "interpolated": (0, 180, 0),
    "resampled": (255, 0, 0),
    "reconstruction": (0, 140, 255),
}
MARGIN_PX = 20
MAX_CANVAS_PX = 4096


def _canvas_for(
    layers: dict[str, Polygon2D | None],
    image: np.ndarray | None,
) -> tuple[np.ndarray, np.ndarray, float]:
    """Blank canvas (or image copy), plus the offset and scale mapping outline points onto it."""
    if image is not None:
        base = image if image.ndim == 3 else cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        return base.copy(), np.zeros(2, dtype=np.float64), 1.0

    arrays = [p.as_array() for p in layers.values() if p is not None and len(p) > 0]
    if not arrays:
        return np.full((2 * MARGIN_PX, 2 * MARGIN_PX, 3), 255, dtype=np.uint8), np.zeros(2, dtype=np.float64), 1.0
    pts = np.vstack(arrays)
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    extent = float(max(hi[0] - lo[0], hi[1] - lo[1]))
    limit = MAX_CANVAS_PX - 2 * MARGIN_PX
    scale = limit / extent if extent > limit else 1.0
    width = min(limit, int(np.ceil((hi[0] - lo[0]) * scale))) + 2 * MARGIN_PX
    height = min(limit, int(np.ceil((hi[1] - lo[1]) * scale))) + 2 * MARGIN_PX
    offset = MARGIN_PX - lo * scale
    return np.full((height, width, 3), 255, dtype=np.uint8), offset, scale


def save_outline_overlay(
    layers: dict[str, Polygon2D | None],
    out_path: str | Path,
    image: np.ndarray | None = None,
) -> None:
    """Draw outline layers in pixel coordinates (y down), over ``image`` when given.

    Without an image, outlines larger than the canvas limit are scaled down to fit.
    """
    base, offset, scale = _canvas_for(layers, image)
    for name, polygon in layers.items():
        if polygon is None or len(polygon) == 0:
            continue
        color = LAYER_COLORS.get(name, (180, 0, 180))
        arr = np.rint(polygon.as_array() * scale + offset).astype(np.int32)
        if name == "knots":
            for col, row in arr:
                cv2.circle(base, (int(col), int(row)), 3, color, thickness=1)
            continue
        if len(arr) >= 2:
            cv2.polylines(base, [arr.reshape((-1, 1, 2))], isClosed=True, color=color, thickness=1)
        # Mark the starting point.
        cv2.circle(base, (int(arr[0, 0]), int(arr[0, 1])), 2, color, thickness=-1)

    cv2.imwrite(str(Path(out_path)), base)
