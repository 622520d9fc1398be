from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from outline2fourier.maths.conjugate_gradient import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE, conjugate_gradient
from outline2fourier.types import FloatArray

LOGGER = logging.getLogger("outline2fourier.fit")


def is_monotonic_increasing(values: npt.ArrayLike) -> bool:
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) < 2:
        return True
    return bool(np.all(np.diff(arr) > 0.0))


def count_decreases(values: npt.ArrayLike) -> int:
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) < 2:
        return 0
    return int(np.count_nonzero(np.diff(arr) < 0.0))


def fix_cross_over(theta: npt.ArrayLike) -> FloatArray | None:
    """Unwrap an angle sequence with at most one 2*pi jump.

    Every value after the single decrease gets one full turn added. More
    than one decrease, or a sequence still not strictly increasing after
    the correction, returns ``None``.
    """
    out = np.asarray(theta, dtype=np.float64).copy()
    decreases = np.flatnonzero(np.diff(out) < 0.0)
    if len(decreases) > 1:
        LOGGER.debug("angle sequence wraps %d times", len(decreases))
        return None
    if len(decreases) == 1:
        out[int(decreases[0]) + 1 :] += 2.0 * math.pi
    if not is_monotonic_increasing(out):
        LOGGER.debug("angle sequence not monotonic after unwrapping")
        return None
    return out


def hermite_1d(y1: float, y2: float, d1: float, d2: float, t: float) -> float:
    """Cubic through (0, y1) and (1, y2) with end slopes d1, d2."""
    dy = y2 - y1
    c = 3.0 * dy - 2.0 * d1 - d2
    d = -2.0 * dy + d1 + d2
    return y1 + t * (d1 + t * (c + t * d))


@dataclass(slots=True)
class SegmentLocation:
    start: int
    end: int
    # Fraction along the segment, on [0, 1].
    t: float


@dataclass(slots=True)
class PeriodicSegments:
    """Strictly increasing positions on the periodic range [lower, upper]."""

    x: FloatArray
    lower: float
    upper: float

    @classmethod
    def build(cls, x: npt.ArrayLike, lower: float, upper: float) -> PeriodicSegments | None:
        arr = np.asarray(x, dtype=np.float64).reshape(-1)
        if len(arr) == 0 or not is_monotonic_increasing(arr):
            return None
        if lower >= upper:
            return None
        if np.any(arr < lower) or np.any(arr > upper):
            return None
        return cls(x=arr, lower=float(lower), upper=float(upper))

    @property
    def period(self) -> float:
        return self.upper - self.lower

    def wrap(self, xp: float) -> float:
        if self.lower <= xp <= self.upper:
            return float(xp)
        out = self.lower + math.fmod(xp - self.lower, self.period)
        if out < self.lower:
            out += self.period
        return out

    def locate(self, xp: float) -> SegmentLocation:
        xw = self.wrap(xp)
        x = self.x
        n = len(x)
        k = int(np.searchsorted(x, xw, side="right"))
        if k >= n:
            k = 0

        if k == 0:
            # Segment running from the last position, through upper/lower, to the first.
            if xw <= x[0]:
                t = (xw - self.lower) + (self.upper - x[n - 1])
            else:
                t = xw - x[n - 1]
            dx = (x[0] - self.lower) + (self.upper - x[n - 1])
            start = n - 1
        else:
            t = xw - x[k - 1]
            dx = x[k] - x[k - 1]
            start = k - 1

        t = 0.0 if dx == 0.0 else float(t / dx)
        return SegmentLocation(start=start, end=k, t=t)


@dataclass(slots=True)
class PeriodicCubicSpline:
    """Periodic cubic spline of y versus x, slopes measured per segment."""

    segments: PeriodicSegments
    y: FloatArray
    derivs: FloatArray

    @classmethod
    def fit(
        cls,
        x: npt.ArrayLike,
        y: npt.ArrayLike,
        lower: float,
        upper: float,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> PeriodicCubicSpline | None:
        segments = PeriodicSegments.build(x, lower, upper)
        if segments is None:
            LOGGER.debug("periodic spline positions invalid for range [%s, %s]", lower, upper)
            return None
        yy = np.asarray(y, dtype=np.float64).reshape(-1)
        if len(yy) != len(segments.x):
            raise ValueError("x and y must have the same length")

        derivs = conjugate_gradient(
            _cyclic_system(len(yy)),
            _cyclic_rhs(yy),
            max_iterations=max_iterations,
            tolerance=tolerance,
        )
        if derivs is None:
            return None
        return cls(segments=segments, y=yy, derivs=derivs)

    def interpolate(self, xp: float) -> float:
        loc = self.segments.locate(xp)
        return hermite_1d(
            float(self.y[loc.start]),
            float(self.y[loc.end]),
            float(self.derivs[loc.start]),
            float(self.derivs[loc.end]),
            loc.t,
        )

    def interpolate_many(self, xs: npt.ArrayLike) -> FloatArray:
        return np.asarray([self.interpolate(float(v)) for v in np.asarray(xs, dtype=np.float64)], dtype=np.float64)


def _cyclic_system(n: int) -> FloatArray:
    mat = np.zeros((n, n), dtype=np.float64)
    for j in range(n):
        mat[j, (j - 1) % n] = 1.0
        mat[j, (j + 1) % n] = 1.0
        mat[j, j] = 4.0
    return mat


def _cyclic_rhs(y: FloatArray) -> FloatArray:
    return 3.0 * (np.roll(y, -1) - np.roll(y, 1))
