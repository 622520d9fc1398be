from __future__ import annotations

import logging
import math

import numpy as np

from outline2fourier.descriptors.tangent_fit import DEFAULT_NEWTON_MAX_ITERATIONS, FIRST_HARMONIC, NFFT
from outline2fourier.maths.fft import ifft
from outline2fourier.types import (
    ComplexArray,
    DescriptorMethod,
    FailureKind,
    FloatArray,
    FourierDescriptor,
    Outcome,
    Polygon2D,
    Reconstruction,
)

LOGGER = logging.getLogger("outline2fourier.descriptors")


def kept_harmonics(available: int, highest: int) -> int:
    """Number of coefficients kept from harmonic 2 up to ``highest``; every one when ``highest`` < 2."""
    if highest < FIRST_HARMONIC:
        return available
    return max(0, min(available, highest - FIRST_HARMONIC + 1))


def full_spectrum(coefficients: ComplexArray, highest: int) -> ComplexArray:
    spectrum = np.zeros(NFFT, dtype=np.complex128)
    keep = kept_harmonics(len(coefficients), highest)
    for j in range(keep):
        h = FIRST_HARMONIC + j
        if h >= NFFT // 2:
            break
        spectrum[h] = coefficients[j]
        spectrum[NFFT - h] = np.conj(coefficients[j])
    return spectrum


def _integrate(a: FloatArray, da: float) -> tuple[ComplexArray, FloatArray, FloatArray, ComplexArray]:
    half = 0.5 * (a[1:] - a[:-1])
    expa = np.exp(1j * 0.5 * (a[1:] + a[:-1]))
    flat = half == 0.0
    safe = np.where(flat, 1.0, half)
    sinc = np.where(flat, 1.0, np.sin(safe) / safe)
    dsinc = np.where(flat, 0.0, (np.cos(safe) - sinc) / safe)
    z = np.concatenate([[0.0 + 0.0j], np.cumsum(expa * (da * sinc))])
    return z, sinc, dsinc, expa


def closed_tangent_curve(
    coefficients: ComplexArray,
    highest: int,
    max_iterations: int = DEFAULT_NEWTON_MAX_ITERATIONS,
) -> FloatArray | None:
    """Integrate the truncated tangent angle function into a closed curve of length 2*pi.

    Two global offsets of the angle, along cos(s) and sin(s), are adjusted by
    Newton steps until the end point coincides with the start point to
    machine precision. Returns 1025 points centred on the origin, the last
    equal to the first, or ``None`` when the Jacobian vanishes or the loop
    runs out of iterations.
    """
    da = 2.0 * math.pi / NFFT
    deviation = np.real(ifft(full_spectrum(coefficients, highest))) * NFFT

    k = np.arange(NFFT + 1, dtype=np.float64)
    a = np.empty(NFFT + 1, dtype=np.float64)
    a[:NFFT] = deviation + da * k[:NFFT]
    a[NFFT] = a[0] + 2.0 * math.pi
    cadj = np.cos(da * k)
    sadj = np.sin(da * k)
    cadj[NFFT] = cadj[0]
    sadj[NFFT] = sadj[0]

    for _ in range(max_iterations):
        z, sinc, dsinc, expa = _integrate(a, da)
        end = z[-1]
        if 1.0 + end.real * end.real + end.imag * end.imag == 1.0:
            break

        iexpa = 1j * expa
        dzdc = np.sum(0.5 * da * (expa * ((cadj[1:] - cadj[:-1]) * dsinc) + iexpa * ((cadj[:-1] + cadj[1:]) * sinc)))
        dzds = np.sum(0.5 * da * (expa * ((sadj[1:] - sadj[:-1]) * dsinc) + iexpa * ((sadj[:-1] + sadj[1:]) * sinc)))

        jac = (np.conj(dzdc) * dzds).imag
        if jac == 0.0:
            LOGGER.info("closure solve: zero jacobian")
            return None
        dc = -(np.conj(end) * dzds).imag / jac
        ds = -(np.conj(dzdc) * end).imag / jac
        ddz = math.pi * (dc * dc + ds * ds) + 2.0 * abs(dc * ds)
        step = min(1.0, abs(end) / ddz) if ddz > 0.0 else 1.0
        a = a + (step * dc) * cadj + (step * ds) * sadj
    else:
        LOGGER.info("closure solve: no convergence after %d iterations", max_iterations)
        return None

    z = z - z[:NFFT].mean()
    z[NFFT] = z[0]
    return np.column_stack([z.real, z.imag])


def align_to_source(
    curve: FloatArray,
    length: float,
    source: Polygon2D,
    rotate: bool,
) -> Polygon2D:
    """Scale a unit-circumference curve by L / 2pi and move it onto the source outline."""
    polygon = Polygon2D.from_array(curve * (length / (2.0 * math.pi)))
    pc = source.centroid()
    qc = polygon.centroid()
    polygon = polygon.transformed(dx=pc.x - qc.x, dy=pc.y - qc.y)
    if not rotate:
        return polygon

    qc = polygon.centroid()
    p0 = source[0]
    q0 = polygon[0]
    pt = math.atan2(p0.y - pc.y, p0.x - pc.x)
    qt = math.atan2(q0.y - qc.y, q0.x - qc.x)
    return polygon.transformed(rotation=pt - qt, about=qc)


def reconstruct_tangent_arclength(
    descriptor: FourierDescriptor,
    highest: int,
    source: Polygon2D,
    max_iterations: int = DEFAULT_NEWTON_MAX_ITERATIONS,
) -> Outcome:
    if descriptor.method is not DescriptorMethod.TANGENT_ARCLENGTH:
        raise ValueError(f"expected a tangent_arclength descriptor, got {descriptor.method.value}")
    if descriptor.outline_length is None:
        raise ValueError("tangent_arclength descriptor carries no outline length")

    curve = closed_tangent_curve(descriptor.coefficients, highest, max_iterations=max_iterations)
    if curve is None:
        return Outcome.fail(FailureKind.NUMERICAL_FAILURE, "outline closure solve failed")

    polygon = align_to_source(
        curve,
        descriptor.outline_length,
        source,
        rotate=descriptor.normalization_index == 0,
    )
    return Outcome.success(
        Reconstruction(polygon=polygon, highest_coefficient=highest, method=DescriptorMethod.TANGENT_ARCLENGTH)
    )
