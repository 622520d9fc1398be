from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from outline2fourier.fit.periodic import PeriodicCubicSpline, count_decreases, fix_cross_over
from outline2fourier.maths.conjugate_gradient import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE
from outline2fourier.maths.fft import fft, ifft
from outline2fourier.types import (
    DescriptorMethod,
    FailureKind,
    FloatArray,
    FourierDescriptor,
    Outcome,
    Point2D,
    Polygon2D,
)

LOGGER = logging.getLogger("outline2fourier.descriptors")


@dataclass(slots=True)
class RadiusThetaSamples:
    centroid: Point2D
    theta: FloatArray
    radius: FloatArray
    polygon: Polygon2D


def _keep_first_reversed(arr: FloatArray) -> FloatArray:
    return np.concatenate([arr[:1], arr[:0:-1]])


def polar_about(polygon: Polygon2D, centre: Point2D) -> tuple[FloatArray, FloatArray]:
    arr = polygon.as_array()
    dx = arr[:, 0] - centre.x
    dy = arr[:, 1] - centre.y
    return np.arctan2(dy, dx), np.hypot(dx, dy)


def resample_radius_vs_theta(
    interpolated: Polygon2D,
    power: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Outcome:
    """Resample radius about the centroid at 2^p equally spaced polar angles.

    Angles start at the first outline point and increase counter-clockwise.
    Outlines that are not star-shaped about their centroid (the polar angle
    wraps more than once) are rejected.
    """
    if len(interpolated) < 3:
        return Outcome.fail(FailureKind.NOT_MEASURED, "outline has fewer than 3 points")

    centre = interpolated.centroid()
    theta, radius = polar_about(interpolated, centre)
    if interpolated.is_clockwise():
        theta = _keep_first_reversed(theta)
        radius = _keep_first_reversed(radius)

    unwrapped = fix_cross_over(theta)
    if unwrapped is None:
        wraps = count_decreases(theta)
        if wraps > 1:
            msg = f"polar angle wraps {wraps} times around the centroid"
        else:
            msg = "polar angle is not monotonic around the centroid"
        LOGGER.info("radius vs theta rejected: %s", msg)
        return Outcome.fail(FailureKind.NON_SIMPLE_OUTLINE, msg)

    start = float(unwrapped[0])
    spline = PeriodicCubicSpline.fit(
        unwrapped,
        radius,
        start,
        start + 2.0 * math.pi,
        max_iterations=max_iterations,
        tolerance=tolerance,
    )
    if spline is None:
        # Positions outside one turn also mean a non star-shaped outline.
        if unwrapped[-1] > start + 2.0 * math.pi:
            return Outcome.fail(FailureKind.NON_SIMPLE_OUTLINE, "polar angle spans more than one turn")
        return Outcome.fail(FailureKind.NUMERICAL_FAILURE, "periodic spline solve failed")

    n = 2**power
    theta_out = start + np.arange(n, dtype=np.float64) * (2.0 * math.pi / n)
    radius_out = spline.interpolate_many(theta_out)
    polygon = _polar_polygon(centre, theta_out, radius_out)

    if polygon.is_clockwise():
        LOGGER.debug("radius vs theta resampling came out clockwise, reordering")
        theta_out = _keep_first_reversed(theta_out)
        radius_out = _keep_first_reversed(radius_out)
        polygon = polygon.reversed_keep_first()

    return Outcome.success(RadiusThetaSamples(centroid=centre, theta=theta_out, radius=radius_out, polygon=polygon))


def _polar_polygon(centre: Point2D, theta: FloatArray, radius: FloatArray) -> Polygon2D:
    xs = centre.x + radius * np.cos(theta)
    ys = centre.y + radius * np.sin(theta)
    return Polygon2D.from_array(np.column_stack([xs, ys]))


def radius_theta_descriptor(samples: RadiusThetaSamples) -> FourierDescriptor:
    return FourierDescriptor(
        method=DescriptorMethod.RADIUS_THETA,
        coefficients=fft(samples.radius),
        first_harmonic=0,
    )


def truncate_spectrum(coefficients: np.ndarray, highest: int) -> np.ndarray:
    """Zero every harmonic above ``highest`` together with its mirror N - j."""
    out = np.array(coefficients, dtype=np.complex128, copy=True)
    n = len(out)
    for j in range(highest + 1, n // 2 + 1):
        out[j] = 0.0
        out[(n - j) % n] = 0.0
    return out


def reconstruct_radius_theta(descriptor: FourierDescriptor, samples: RadiusThetaSamples, highest: int) -> Polygon2D:
    if len(descriptor.coefficients) != len(samples.theta):
        raise ValueError("descriptor and resampled angles differ in length")
    radius = np.real(ifft(truncate_spectrum(descriptor.coefficients, highest)))
    return _polar_polygon(samples.centroid, samples.theta, radius)
