from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from outline2fourier.fit.tangents import build_tangents
from outline2fourier.types import FloatArray, SplineStrategy

LOGGER = logging.getLogger("outline2fourier.fit")

N_INTEGRATION_SEGMENTS = 1024
MIN_CLOSED_KNOTS = 3
MIN_OPEN_KNOTS = 2


def _check_unit_parameter(t: float) -> None:
    if t < 0.0 or t > 1.0:
        raise ValueError(f"curve parameter {t} outside [0, 1]")


@dataclass(slots=True)
class HermiteSegment:
    """Cubic Hermite curve between two knots, given the tangent at each."""

    p1: FloatArray
    p2: FloatArray
    t1: FloatArray
    t2: FloatArray
    _length: float | None = field(default=None, repr=False)

    def point(self, t: float) -> FloatArray:
        _check_unit_parameter(t)
        t2 = t * t
        t3 = t2 * t
        a1 = 2.0 * t3 - 3.0 * t2 + 1.0
        b1 = t3 - 2.0 * t2 + t
        a2 = -2.0 * t3 + 3.0 * t2
        b2 = t3 - t2
        return a1 * self.p1 + b1 * self.t1 + a2 * self.p2 + b2 * self.t2

    def tangent(self, t: float) -> FloatArray:
        _check_unit_parameter(t)
        t2 = t * t
        a1 = 6.0 * t2 - 6.0 * t
        b1 = 3.0 * t2 - 4.0 * t + 1.0
        a2 = -6.0 * t2 + 6.0 * t
        b2 = 3.0 * t2 - 2.0 * t
        return a1 * self.p1 + b1 * self.t1 + a2 * self.p2 + b2 * self.t2

    def sample(self, count: int) -> FloatArray:
        t = np.linspace(0.0, 1.0, count + 1, dtype=np.float64)[:, None]
        t2 = t * t
        t3 = t2 * t
        a1 = 2.0 * t3 - 3.0 * t2 + 1.0
        b1 = t3 - 2.0 * t2 + t
        a2 = -2.0 * t3 + 3.0 * t2
        b2 = t3 - t2
        return a1 * self.p1 + b1 * self.t1 + a2 * self.p2 + b2 * self.t2

    @property
    def length(self) -> float:
        # Polyline through 1024 equal parameter steps.
        if self._length is None:
            pts = self.sample(N_INTEGRATION_SEGMENTS)
            self._length = float(np.linalg.norm(np.diff(pts, axis=0), axis=1).sum())
        return self._length


@dataclass(slots=True)
class JoinedSegments:
    lengths: FloatArray

    @property
    def total(self) -> float:
        return float(self.lengths.sum())

    def cumulative(self) -> FloatArray:
        return np.concatenate([[0.0], np.cumsum(self.lengths)])

    def locate(self, t: float) -> tuple[int, float]:
        """Map a global arc-length fraction to (segment index, local parameter)."""
        _check_unit_parameter(t)
        total = self.total
        if total <= 0.0:
            raise ValueError("joined segments have zero total length")

        d1 = 0.0
        t1 = 0.0
        last_positive = -1
        for k, seg_len in enumerate(self.lengths):
            d2 = d1 + float(seg_len)
            t2 = d2 / total
            if seg_len > 0.0:
                last_positive = k
            if t1 <= t < t2:
                return k, min(1.0, (t - t1) * total / float(seg_len))
            d1 = d2
            t1 = t2

        # t == 1.0 lands at the very end of the last segment with any length.
        return last_positive, 1.0


@dataclass(slots=True)
class OutlineSpline:
    knots: FloatArray
    tangents: FloatArray
    closed: bool
    strategy: SplineStrategy
    segments: list[HermiteSegment]
    joined: JoinedSegments

    @property
    def length(self) -> float:
        return self.joined.total

    def point_at(self, t: float) -> FloatArray:
        k, local = self.joined.locate(t)
        return self.segments[k].point(local)

    def tangent_at(self, t: float) -> FloatArray:
        k, local = self.joined.locate(t)
        return self.segments[k].tangent(local)

    def sample(self, fractions: npt.ArrayLike) -> FloatArray:
        ts = np.asarray(fractions, dtype=np.float64).reshape(-1)
        out = np.zeros((len(ts), 2), dtype=np.float64)
        for i, t in enumerate(ts):
            out[i] = self.point_at(float(t))
        return out


def fit_outline_spline(
    knots: npt.ArrayLike,
    closed: bool = True,
    strategy: SplineStrategy | str = SplineStrategy.CIRCLE,
) -> OutlineSpline | None:
    """Fit a cubic Hermite spline through the knots with the chosen tangent strategy.

    Returns ``None`` when there are too few knots (3 closed, 2 open) or the
    knots are all coincident.
    """
    arr = np.asarray(knots, dtype=np.float64).reshape(-1, 2)
    n = len(arr)
    minimum = MIN_CLOSED_KNOTS if closed else MIN_OPEN_KNOTS
    if n < minimum:
        LOGGER.debug("spline needs at least %d knots, got %d", minimum, n)
        return None

    key = SplineStrategy(strategy)
    tangents = build_tangents(arr, closed, key)
    count = n if closed else n - 1
    segments = [
        HermiteSegment(p1=arr[j], p2=arr[(j + 1) % n], t1=tangents[j], t2=tangents[(j + 1) % n])
        for j in range(count)
    ]
    joined = JoinedSegments(lengths=np.asarray([s.length for s in segments], dtype=np.float64))
    if joined.total <= 0.0:
        LOGGER.debug("spline knots are all coincident")
        return None
    return OutlineSpline(
        knots=arr,
        tangents=tangents,
        closed=closed,
        strategy=key,
        segments=segments,
        joined=joined,
    )
