from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np

from outline2fourier.types import FloatArray, SplineStrategy

TangentBuilder = Callable[[FloatArray, bool], FloatArray]


def circle_centre(p0: np.ndarray, p1: np.ndarray, p2: np.ndarray) -> tuple[float, float] | None:
    """Centre of the circle through three points, or None when they are collinear or repeated."""
    ax, ay = float(p0[0]), float(p0[1])
    bx, by = float(p1[0]), float(p1[1])
    cx, cy = float(p2[0]), float(p2[1])
    det = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    if det == 0.0:
        return None
    a2 = ax * ax + ay * ay
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy
    xc = (a2 * (by - cy) + b2 * (cy - ay) + c2 * (ay - by)) / det
    yc = (a2 * (cx - bx) + b2 * (ax - cx) + c2 * (bx - ax)) / det
    if not (math.isfinite(xc) and math.isfinite(yc)):
        return None
    return xc, yc


def _chord_neighbours(j: int, n: int, closed: bool) -> tuple[int, int]:
    if not closed and j == 0:
        return j, j + 1
    if not closed and j == n - 1:
        return j - 1, j
    return (j - 1) % n, (j + 1) % n


def chord_tangents(knots: FloatArray, closed: bool) -> FloatArray:
    n = len(knots)
    tangents = np.zeros((n, 2), dtype=np.float64)
    for j in range(n):
        j1, j2 = _chord_neighbours(j, n, closed)
        tangents[j] = 0.5 * (knots[j2] - knots[j1])
    return tangents


def circle_tangents(knots: FloatArray, closed: bool) -> FloatArray:
    """Tangents perpendicular to the radius of the circle through each knot and its neighbours.

    On open curves the end knots borrow the circle of their inner neighbour.
    The direction follows the chord across the middle knot and the length
    matches that chord tangent. Collinear or repeated knots fall back to the
    chord tangent.
    """
    n = len(knots)
    tangents = np.zeros((n, 2), dtype=np.float64)
    for j in range(n):
        if not closed and j == 0:
            j0 = 1
        elif not closed and j == n - 1:
            j0 = n - 2
        else:
            j0 = j
        j1 = (j0 - 1) % n
        j2 = (j0 + 1) % n

        chord = 0.5 * (knots[j2] - knots[j1])
        centre = circle_centre(knots[j0], knots[j1], knots[j2])
        if centre is None:
            tangents[j] = chord
            continue

        xc, yc = centre
        pj = knots[j]
        t = np.array([pj[1] - yc, -(pj[0] - xc)], dtype=np.float64)
        tlen = float(np.hypot(t[0], t[1]))
        dlen = float(np.hypot(chord[0], chord[1]))
        if tlen == 0.0 or dlen == 0.0:
            tangents[j] = chord
            continue
        if float(t @ chord) / (tlen * dlen) < 0.0:
            t = -t
        tangents[j] = t / tlen * dlen
    return tangents


TANGENT_BUILDERS: dict[SplineStrategy, TangentBuilder] = {
    SplineStrategy.CHORD: chord_tangents,
    SplineStrategy.CIRCLE: circle_tangents,
}


def build_tangents(knots: FloatArray, closed: bool, strategy: SplineStrategy | str) -> FloatArray:
    key = SplineStrategy(strategy)
    arr = np.asarray(knots, dtype=np.float64).reshape(-1, 2)
    return TANGENT_BUILDERS[key](arr, closed)
