import math

import numpy as np
import pytest

from outline2fourier.config import OutlineConfig
from outline2fourier.descriptors.tangent_curve import closed_tangent_curve, full_spectrum, kept_harmonics
from outline2fourier.descriptors.tangent_fit import (
    ZERO_COEFFICIENT_WARNING,
    fit_tangent_profile,
    normalization_rotation,
    tangent_arclength_descriptor,
)
from outline2fourier.measurement import OutlineMeasurement
from outline2fourier.types import FailureKind, Polygon2D


def _regular(n: int, radius: float = 10.0) -> Polygon2D:
    t = 2.0 * np.pi * np.arange(n) / n
    return Polygon2D.from_array(np.column_stack([radius * np.cos(t), radius * np.sin(t)]))


def _blob(n: int = 64) -> Polygon2D:
    t = 2.0 * np.pi * np.arange(n) / n
    r = 5.0 + 0.8 * np.cos(3.0 * t) + 0.3 * np.sin(2.0 * t)
    return Polygon2D.from_array(np.column_stack([1.6 * r * np.cos(t), r * np.sin(t)]))


def test_regular_polygon_fits_a_circle():
    profile = fit_tangent_profile(_regular(64))
    assert profile.winding == 1
    assert profile.length == pytest.approx(2.0 * math.pi * 10.0, rel=1e-9)

    descriptor = tangent_arclength_descriptor(_regular(64)).value
    assert descriptor.first_harmonic == 2
    assert len(descriptor.coefficients) == 510
    assert np.max(descriptor.amplitudes()) < 1e-9


def test_circle_reconstruction_radius_matches_length():
    knots = _regular(32).as_array()
    m = OutlineMeasurement(knots, settings=OutlineConfig(method="tangent_arclength"))
    descriptor = m.descriptor().value
    recon = m.reconstruction()
    assert recon.ok

    polygon = recon.value.polygon
    assert len(polygon) == 1025
    centre = polygon.centroid()
    radii = [p.distance_to(centre) for p in polygon.points]
    assert radii == pytest.approx([descriptor.outline_length / (2.0 * math.pi)] * 1025, rel=1e-6)
    assert centre.as_tuple() == pytest.approx(m.interpolated().value.centroid().as_tuple(), abs=1e-6)


def test_amplitudes_ignore_rotation_translation_and_scale():
    blob = _blob()
    moved = blob.transformed(scale=2.5, rotation=0.7, dx=30.0, dy=-12.0)

    a = tangent_arclength_descriptor(blob).value.amplitudes()
    b = tangent_arclength_descriptor(moved).value.amplitudes()
    assert b == pytest.approx(a, rel=1e-6, abs=1e-12)


def test_amplitudes_ignore_starting_point():
    blob = _blob()
    relabelled = Polygon2D(points=blob.points[17:] + blob.points[:17])

    a = tangent_arclength_descriptor(blob).value.amplitudes()[:20]
    b = tangent_arclength_descriptor(relabelled).value.amplitudes()[:20]
    assert b == pytest.approx(a, abs=1e-5)


def test_clockwise_polygon_gives_same_amplitudes():
    blob = _blob()
    a = tangent_arclength_descriptor(blob).value.amplitudes()[:20]
    b = tangent_arclength_descriptor(blob.reversed_keep_first()).value.amplitudes()[:20]
    assert b == pytest.approx(a, abs=1e-5)


def test_figure_eight_is_not_simple():
    t = 2.0 * np.pi * np.arange(32) / 32 + 0.01
    eight = Polygon2D.from_array(np.column_stack([np.sin(2.0 * t), np.sin(t)]))
    outcome = tangent_arclength_descriptor(eight)
    assert not outcome.ok
    assert outcome.failure.kind is FailureKind.NON_SIMPLE_OUTLINE


def test_repeated_vertex_is_a_numerical_failure():
    square = Polygon2D.from_array([(0.0, 0.0), (1.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])
    outcome = tangent_arclength_descriptor(square)
    assert outcome.failure.kind is FailureKind.NUMERICAL_FAILURE


def test_normalization_index_out_of_range():
    with pytest.raises(ValueError):
        tangent_arclength_descriptor(_blob(), normalization_index=511)


def test_normalization_rotation():
    assert normalization_rotation(np.zeros(1024, dtype=np.complex128), 0) == (1.0, None)

    rotation, warning = normalization_rotation(np.zeros(1024, dtype=np.complex128), 3)
    assert rotation == 1.0
    assert warning == ZERO_COEFFICIENT_WARNING

    rng = np.random.default_rng(7)
    spectrum = rng.normal(size=1024) + 1j * rng.normal(size=1024)
    for index in (1, 3, 40):
        rotation, warning = normalization_rotation(spectrum, index)
        c = spectrum[index + 1]
        assert warning is None
        assert abs(rotation) == pytest.approx(1.0)
        got = c * rotation**index
        assert got.real == pytest.approx(0.0, abs=1e-9)
        assert got.imag == pytest.approx(-abs(c))


def test_normalization_keeps_amplitudes():
    blob = _blob()
    plain = tangent_arclength_descriptor(blob).value
    normalized = tangent_arclength_descriptor(blob, normalization_index=1).value
    assert normalized.normalization_index == 1
    assert normalized.amplitudes() == pytest.approx(plain.amplitudes(), rel=1e-9, abs=1e-15)


def test_zero_coefficients_close_to_unit_circle():
    curve = closed_tangent_curve(np.zeros(510, dtype=np.complex128), highest=10)
    assert curve.shape == (1025, 2)
    assert curve[-1] == pytest.approx(curve[0])
    assert np.hypot(curve[:, 0], curve[:, 1]) == pytest.approx(np.ones(1025), abs=1e-10)


def test_full_spectrum_is_conjugate_symmetric():
    rng = np.random.default_rng(3)
    coeffs = rng.normal(size=510) + 1j * rng.normal(size=510)
    spectrum = full_spectrum(coeffs, highest=6)
    assert spectrum[2] == coeffs[0]
    assert spectrum[6] == coeffs[4]
    assert spectrum[7] == 0.0
    assert spectrum[1024 - 3] == np.conj(coeffs[1])
    assert np.count_nonzero(spectrum) == 10


def test_kept_harmonics():
    assert kept_harmonics(510, 0) == 510
    assert kept_harmonics(510, 1) == 510
    assert kept_harmonics(510, 2) == 1
    assert kept_harmonics(510, 5) == 4
    assert kept_harmonics(510, 600) == 510


def _distance_to_polyline(points: np.ndarray, line: np.ndarray) -> np.ndarray:
    a = line[:-1]
    ab = line[1:] - a
    denom = np.maximum(np.sum(ab * ab, axis=1), 1e-300)
    out = np.empty(len(points))
    for i, p in enumerate(points):
        t = np.clip(np.sum((p - a) * ab, axis=1) / denom, 0.0, 1.0)
        proj = a + t[:, None] * ab
        out[i] = np.min(np.hypot(proj[:, 0] - p[0], proj[:, 1] - p[1]))
    return out


def test_reconstruction_error_shrinks_with_more_harmonics():
    m = OutlineMeasurement(_blob().as_array(), settings=OutlineConfig(method="tangent_arclength"))
    target = m.resampled().value.polygon.as_array()

    errors = []
    for highest in (2, 4, 8, 16, 32):
        assert m.set_highest_coefficient(highest) is None
        recon = m.reconstruction()
        assert recon.ok
        d = _distance_to_polyline(target, recon.value.polygon.as_array())
        errors.append(float(np.sqrt(np.mean(d * d))))

    for before, after in zip(errors, errors[1:]):
        assert after <= before + 1e-9
    assert errors[-1] < 0.1 * errors[0]


def test_zero_normalization_coefficient_warning_reaches_display(monkeypatch):
    from outline2fourier.descriptors import tangent_fit
    from outline2fourier.report import build_report, display_lines

    original = tangent_fit.detrended_spectrum

    def without_second_harmonic(angles):
        spectrum = original(angles)
        spectrum[2] = 0.0
        return spectrum

    monkeypatch.setattr(tangent_fit, "detrended_spectrum", without_second_harmonic)
    m = OutlineMeasurement(
        _blob().as_array(),
        settings=OutlineConfig(method="tangent_arclength", normalization_index=1),
    )
    assert m.descriptor().ok
    assert m.warnings() == [ZERO_COEFFICIENT_WARNING]
    assert f"Warning: {ZERO_COEFFICIENT_WARNING}" in display_lines(m, long_display=True)
    assert ZERO_COEFFICIENT_WARNING in build_report(m)["warnings"]
