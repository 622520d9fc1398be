from __future__ import annotations

import numpy as np

from outline2fourier.fit.outline_spline import OutlineSpline
from outline2fourier.types import Polygon2D

INTERP_POWER = 8
INTERP_COUNT = 2**INTERP_POWER


def interpolate_outline(spline: OutlineSpline, count: int = INTERP_COUNT) -> Polygon2D:
    """Sample the spline at ``count`` equal arc-length fractions j / count."""
    fractions = np.arange(count, dtype=np.float64) / float(count)
    return Polygon2D.from_array(spline.sample(fractions))


def ensure_counter_clockwise(polygon: Polygon2D) -> Polygon2D:
    if polygon.is_clockwise():
        return polygon.reversed_keep_first()
    return polygon


def resample_tangent_vs_arclength(interpolated: Polygon2D, power: int) -> Polygon2D:
    """Take every 2^(8-p)-th interpolated point, walking counter-clockwise from the first one."""
    if power < 0 or power > INTERP_POWER:
        raise ValueError(f"resampling power {power} outside [0, {INTERP_POWER}]")
    if len(interpolated) != INTERP_COUNT:
        raise ValueError(f"expected {INTERP_COUNT} interpolated points, got {len(interpolated)}")

    n = 2**power
    step = 2 ** (INTERP_POWER - power)
    clockwise = interpolated.is_clockwise()
    points = [interpolated[0]]
    for j in range(1, n):
        idx = (n - j) * step if clockwise else j * step
        points.append(interpolated[idx])
    return Polygon2D(points=points)
