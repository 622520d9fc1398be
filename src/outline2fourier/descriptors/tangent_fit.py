"""Tangent angle versus arc length descriptors.

The outline is treated as a closed polygon. Each edge gets a smooth tangent
angle profile whose chord condition is solved with Newton's method over a
five point Gauss-Lobatto rule; the profiles are then resampled at 1024 equal
arc-length steps, detrended by the 2*pi*s/L ramp of a simple loop and Fourier
transformed. Harmonics 2..511 are returned, optionally rotated so that a
chosen harmonic takes a fixed phase.
"""

from __future__ import annotations

import cmath
import logging
import math
from dataclasses import dataclass

import numpy as np

from outline2fourier.maths.fft import fft
from outline2fourier.types import (
    ComplexArray,
    DescriptorMethod,
    FailureKind,
    FloatArray,
    FourierDescriptor,
    Outcome,
    Polygon2D,
)

LOGGER = logging.getLogger("outline2fourier.descriptors")

NFFT = 1024
NCOEFF = NFFT // 2
FIRST_HARMONIC = 2
MAX_NORMALIZATION_INDEX = NCOEFF - 2
DEFAULT_NEWTON_MAX_ITERATIONS = 200

ZERO_COEFFICIENT_WARNING = "kept initial starting point because the normalization coefficient is zero"

_R3_7 = math.sqrt(3.0 / 7.0)
GAUSS_POSITIONS = (0.0, 0.5 * (1.0 - _R3_7), 0.5, 0.5 * (1.0 + _R3_7), 1.0)
GAUSS_WEIGHTS = (1.0 / 20.0, 49.0 / 180.0, 16.0 / 45.0, 49.0 / 180.0, 1.0 / 20.0)


@dataclass(slots=True)
class TangentProfile:
    """Per-vertex tangent data of the closed polygon (first vertex repeated at the end)."""

    amean: FloatArray
    aval: FloatArray
    ds: FloatArray
    sval: FloatArray
    dda: FloatArray

    @property
    def length(self) -> float:
        return float(self.sval[-1])

    @property
    def winding(self) -> int:
        # Round half up, matching a nearest-integer turn count.
        return int(math.floor((self.aval[-1] - self.aval[0]) / (2.0 * math.pi) + 0.5))


def _edge_angles(xy: FloatArray) -> tuple[FloatArray, FloatArray, FloatArray] | None:
    count = len(xy)
    amean = np.zeros(count, dtype=np.float64)
    aval = np.zeros(count, dtype=np.float64)
    ds = np.zeros(count, dtype=np.float64)

    dx = xy[0, 0] - xy[count - 2, 0]
    dy = xy[0, 1] - xy[count - 2, 1]
    ds[0] = math.hypot(dx, dy)
    if ds[0] == 0.0:
        return None
    zm = complex(dx, dy) / ds[0]
    amean[0] = math.atan2(dy, dx)

    for ip in range(1, count):
        i = ip - 1
        dx = xy[ip, 0] - xy[i, 0]
        dy = xy[ip, 1] - xy[i, 1]
        ds[ip] = math.hypot(dx, dy)
        if ds[ip] == 0.0:
            return None
        zp = complex(dx, dy) / ds[ip]
        da = cmath.phase(zp / zm)
        amean[ip] = amean[i] + da
        a = amean[i] + 0.5 * da + math.atan(math.tan(0.5 * da) * (ds[i] - ds[ip]) / (ds[i] + ds[ip]))
        a = max(a, max(amean[i], amean[ip]) - 0.5 * math.pi)
        aval[i] = min(a, min(amean[i], amean[ip]) + 0.5 * math.pi)
        zm = zp

    aval[count - 1] = aval[0] + (amean[count - 1] - amean[0])
    return amean, aval, ds


def _solve_edge_curvature(da0: float, da1: float, max_iterations: int) -> float | None:
    """Newton solve for the quadratic angle correction that keeps the edge chord straight."""
    dd = 6.0 * (da0 + da1)
    for _ in range(max_iterations):
        s = 0.0
        dsdd = 0.0
        for pos, w in zip(GAUSS_POSITIONS, GAUSS_WEIGHTS):
            t1 = pos
            t0 = 1.0 - t1
            hprod = 0.5 * t1 * t0
            da = da0 * t0 + da1 * t1 - dd * hprod
            s += w * math.sin(da)
            dsdd -= w * hprod * math.cos(da)
        if 1.0 + s * s == 1.0:
            return dd
        if dsdd == 0.0:
            return None
        dd -= (s / dsdd) * min(1.0, 124.0 * dsdd * dsdd / abs(s))
    return None


def _chord_cosine(da0: float, da1: float, dd: float) -> float:
    c = 0.0
    for pos, w in zip(GAUSS_POSITIONS, GAUSS_WEIGHTS):
        t1 = pos
        t0 = 1.0 - t1
        c += w * math.cos(da0 * t0 + da1 * t1 - dd * 0.5 * t1 * t0)
    return c


def fit_tangent_profile(polygon: Polygon2D, max_iterations: int = DEFAULT_NEWTON_MAX_ITERATIONS) -> TangentProfile | None:
    arr = polygon.as_array()
    if len(arr) < 3:
        return None
    xy = np.vstack([arr, arr[:1]])
    edges = _edge_angles(xy)
    if edges is None:
        LOGGER.debug("tangent fit: repeated consecutive outline points")
        return None
    amean, aval, ds = edges

    count = len(xy)
    sval = np.zeros(count, dtype=np.float64)
    dda = np.zeros(count - 1, dtype=np.float64)
    for ip in range(1, count):
        i = ip - 1
        da0 = aval[i] - amean[ip]
        da1 = aval[ip] - amean[ip]
        dd = _solve_edge_curvature(da0, da1, max_iterations)
        if dd is None:
            LOGGER.debug("tangent fit: edge %d curvature solve did not converge", i)
            return None
        dda[i] = dd
        c = _chord_cosine(da0, da1, dd)
        if c <= 0.0:
            return None
        ds[ip] /= c
        sval[ip] = sval[i] + ds[ip]

    return TangentProfile(amean=amean, aval=aval, ds=ds, sval=sval, dda=dda)


def sample_tangent_angles(profile: TangentProfile, count: int = NFFT) -> FloatArray:
    """Tangent angle at ``count`` equal arc-length steps starting at the first vertex."""
    sval = profile.sval
    last = len(sval) - 1
    step = sval[last] / count
    out = np.zeros(count, dtype=np.float64)
    i0 = 0
    i1 = 1
    for k in range(count):
        sout = step * k
        while i1 < last and sout >= sval[i1]:
            i0 = i1
            i1 += 1
        tout = (sout - sval[i0]) / profile.ds[i1]
        da0 = profile.aval[i0] - profile.amean[i1]
        da1 = profile.aval[i1] - profile.amean[i1]
        dd = profile.dda[i0]
        out[k] = profile.amean[i1] + da0 * (1.0 - tout) + da1 * tout - dd * 0.5 * tout * (1.0 - tout)
    return out


def detrended_spectrum(angles: FloatArray) -> ComplexArray:
    n = len(angles)
    ramp = 2.0 * math.pi * np.arange(n, dtype=np.float64) / n
    return fft(angles - ramp) / n


def normalization_rotation(spectrum: ComplexArray, index: int) -> tuple[complex, str | None]:
    """Unit rotation r such that spectrum[index + 1] * r**index is negative imaginary.

    Harmonic h of the descriptor is then multiplied by r**h. Index 0 means no
    normalization. A zero coefficient keeps the identity rotation and returns
    a warning message.
    """
    if index == 0:
        return complex(1.0, 0.0), None
    ia = abs(index)
    c = complex(spectrum[ia + 1])
    if abs(c) == 0.0:
        return complex(1.0, 0.0), ZERO_COEFFICIENT_WARNING
    target = complex(0.0, abs(c)) if index < 0 else complex(0.0, -abs(c))
    arg = cmath.phase(target / c) / ia
    return cmath.exp(1j * arg), None


def tangent_arclength_descriptor(
    polygon: Polygon2D,
    normalization_index: int = 0,
    max_iterations: int = DEFAULT_NEWTON_MAX_ITERATIONS,
) -> Outcome:
    if abs(normalization_index) > MAX_NORMALIZATION_INDEX:
        raise ValueError(f"normalization index {normalization_index} outside [0, {MAX_NORMALIZATION_INDEX}]")

    profile = fit_tangent_profile(polygon, max_iterations=max_iterations)
    if profile is None:
        return Outcome.fail(FailureKind.NUMERICAL_FAILURE, "tangent angle fit did not converge")

    winding = profile.winding
    if abs(winding) != 1:
        LOGGER.info("tangent vs arc length rejected: net turning %d", winding)
        return Outcome.fail(
            FailureKind.NON_SIMPLE_OUTLINE,
            f"outline turns {winding} times, not a simple loop",
        )

    angles = sample_tangent_angles(profile)
    if winding == -1:
        angles = -angles

    spectrum = detrended_spectrum(angles)
    if not np.all(np.isfinite(spectrum)):
        return Outcome.fail(FailureKind.NUMERICAL_FAILURE, "tangent angle spectrum is not finite")

    rotation, warning = normalization_rotation(spectrum, normalization_index)
    warnings: list[str] = []
    if warning is not None:
        LOGGER.warning("harmonic %d: %s", abs(normalization_index) + 1, warning)
        warnings.append(warning)

    harmonics = np.arange(FIRST_HARMONIC, NCOEFF, dtype=np.float64)
    phase = np.angle(rotation)
    coefficients = spectrum[FIRST_HARMONIC:NCOEFF] * np.exp(1j * phase * harmonics)

    descriptor = FourierDescriptor(
        method=DescriptorMethod.TANGENT_ARCLENGTH,
        coefficients=coefficients.astype(np.complex128),
        normalization_index=normalization_index,
        first_harmonic=FIRST_HARMONIC,
        outline_length=profile.length,
    )
    return Outcome.success(descriptor, warnings=warnings)
