from __future__ import annotations

from typing import Any

import numpy as np

from outline2fourier.config import AppConfig, CalibrationConfig
from outline2fourier.descriptors.tangent_curve import kept_harmonics
from outline2fourier.descriptors.tangent_fit import FIRST_HARMONIC, NCOEFF
from outline2fourier.measurement import OutlineMeasurement
from outline2fourier.types import DescriptorMethod, FailureKind, FourierDescriptor, Outcome, Point2D

NOT_MEASURED = "not measured"
CANNOT_ANALYZE = "cannot analyze with this method"


def failure_text(outcome: Outcome) -> str | None:
    if outcome.failure is None:
        return None
    if outcome.failure.kind is FailureKind.NOT_MEASURED:
        return NOT_MEASURED
    return CANNOT_ANALYZE


def calibrated_area(area: float, calibration: CalibrationConfig) -> float:
    return area * calibration.factor**2


def calibrated_length(length: float, calibration: CalibrationConfig) -> float:
    return length * calibration.factor


def calibrated_point(point: Point2D, calibration: CalibrationConfig) -> Point2D:
    return point.translate(-calibration.origin_x, -calibration.origin_y).scale(calibration.factor)


def direction_label(clockwise: bool, image_y_down: bool = True) -> str:
    # y-down images show a y-up clockwise outline counter-clockwise.
    seen_clockwise = (not clockwise) if image_y_down else clockwise
    return "Measured clockwise" if seen_clockwise else "Measured counter-clockwise"


def clockwise_flag(clockwise: bool, image_y_down: bool = True) -> bool:
    return (not clockwise) if image_y_down else clockwise


def listed_coefficients(descriptor: FourierDescriptor, highest: int) -> list[tuple[int, complex]]:
    """(harmonic, coefficient) pairs kept at the given highest coefficient."""
    coeffs = descriptor.coefficients
    if descriptor.method is DescriptorMethod.TANGENT_ARCLENGTH:
        keep = kept_harmonics(len(coeffs), highest)
    else:
        keep = min(len(coeffs), highest + 1)
    return [(descriptor.first_harmonic + j, complex(coeffs[j])) for j in range(keep)]


def normalized_amplitudes(descriptor: FourierDescriptor, highest: int) -> tuple[list[tuple[int, float]], bool]:
    """Amplitudes relative to harmonic 2; the flag is False when raw amplitudes are returned."""
    coeffs = descriptor.coefficients
    listed = listed_coefficients(descriptor, highest)
    if descriptor.method is DescriptorMethod.TANGENT_ARCLENGTH:
        reference = float(np.abs(coeffs[0])) if len(coeffs) else 0.0
        amps = [(k, abs(c)) for k, c in listed]
    else:
        # One-sided amplitude of a real signal.
        reference = 2.0 * float(np.abs(coeffs[2])) if len(coeffs) > 2 else 0.0
        amps = [(k, 2.0 * abs(c)) for k, c in listed]
    if reference == 0.0:
        return amps, False
    return [(k, a / reference) for k, a in amps], True


def _fmt(value: float) -> str:
    return f"{value:.7g}"


def display_lines(
    measurement: OutlineMeasurement,
    calibration: CalibrationConfig | None = None,
    long_display: bool = False,
) -> list[str]:
    cal = calibration or CalibrationConfig()
    interp = measurement.interpolated()
    if not interp.ok:
        return [NOT_MEASURED]

    lines: list[str] = []
    area = measurement.area()
    centre = measurement.centroid()
    length = measurement.outline_length()
    if area is not None:
        lines.append(f"{_fmt(calibrated_area(area, cal))} (area)")
    if centre is not None:
        p = calibrated_point(centre, cal)
        lines.append(f"({_fmt(p.x)},{_fmt(p.y)}) (centroid)")
    if length is not None:
        lines.append(f"{_fmt(calibrated_length(length, cal))} (outline length)")
    clockwise = measurement.is_clockwise()
    if clockwise is not None:
        lines.append(direction_label(clockwise, cal.image_y_down))

    if not long_display:
        return lines

    if measurement.method is DescriptorMethod.NONE:
        lines.append("(Fourier analysis not performed)")
        return lines
    descriptor = measurement.descriptor()
    if not descriptor.ok:
        lines.append(f"({failure_text(descriptor)})")
        return lines

    amps, normalized = normalized_amplitudes(descriptor.value, measurement.highest_coefficient)
    if normalized:
        lines.append("Fourier coefficient amplitudes (normalized by 2nd):")
    else:
        lines.append("Fourier coefficient amplitudes (2nd is zero, not normalized):")
    lines.extend(f"   {k}: {_fmt(a)}" for k, a in amps)
    for warning in descriptor.warnings:
        lines.append(f"Warning: {warning}")
    return lines


def _csv_harmonics(measurement: OutlineMeasurement) -> list[int]:
    highest = measurement.highest_coefficient
    if measurement.method is DescriptorMethod.TANGENT_ARCLENGTH:
        keep = kept_harmonics(NCOEFF - FIRST_HARMONIC, highest)
        return list(range(FIRST_HARMONIC, FIRST_HARMONIC + keep))
    if measurement.method is DescriptorMethod.RADIUS_THETA:
        return list(range(highest + 1))
    return []


def csv_header(measurement: OutlineMeasurement, name: str = "outline") -> list[str]:
    header = [f"{name} (area)", "(length)", "(clockwise)"]
    for k in _csv_harmonics(measurement):
        header.extend([f"(Real{k})", f"(Imag{k})"])
    return header


def csv_row(measurement: OutlineMeasurement, calibration: CalibrationConfig | None = None) -> list[str]:
    cal = calibration or CalibrationConfig()
    harmonics = _csv_harmonics(measurement)
    interp = measurement.interpolated()
    if not interp.ok:
        return [NOT_MEASURED, "", ""] + [""] * (2 * len(harmonics))

    clockwise = measurement.is_clockwise()
    flag = "" if clockwise is None else str(clockwise_flag(clockwise, cal.image_y_down)).lower()

    if measurement.method is DescriptorMethod.NONE:
        descriptor = None
    else:
        outcome = measurement.descriptor()
        if not outcome.ok:
            return [CANNOT_ANALYZE, "", flag] + [""] * (2 * len(harmonics))
        descriptor = outcome.value

    area = measurement.area() or 0.0
    length = measurement.outline_length() or 0.0
    row = [repr(calibrated_area(area, cal)), repr(calibrated_length(length, cal)), flag]
    if descriptor is None:
        return row + [""] * (2 * len(harmonics))

    by_harmonic = {k: c for k, c in listed_coefficients(descriptor, measurement.highest_coefficient)}
    for k in harmonics:
        c = by_harmonic.get(k)
        if c is None:
            row.extend(["", ""])
        else:
            row.extend([repr(c.real), repr(c.imag)])
    return row


def build_report(measurement: OutlineMeasurement, cfg: AppConfig | None = None) -> dict[str, Any]:
    cfg = cfg or AppConfig()
    cal = cfg.calibration
    summary = measurement.summary()
    report: dict[str, Any] = {
        "name": cfg.report.name,
        "settings": measurement.settings().model_dump(mode="json"),
        "knots": summary["knots"],
        "closed": summary["closed"],
        "status": "ok",
        "warnings": [],
    }

    if summary["area"] is None:
        report["status"] = NOT_MEASURED
        report["failure"] = measurement.interpolated().failure.message
        return report

    centre = calibrated_point(measurement.centroid(), cal)
    report.update(
        {
            "area": calibrated_area(summary["area"], cal),
            "centroid": [centre.x, centre.y],
            "outline_length": calibrated_length(summary["outline_length"], cal),
            "perimeter": calibrated_length(summary["perimeter"], cal),
            "clockwise": summary["clockwise"],
            "direction": direction_label(summary["clockwise"], cal.image_y_down)
            if summary["clockwise"] is not None
            else None,
        }
    )

    if measurement.method is DescriptorMethod.NONE:
        return report

    descriptor = measurement.descriptor()
    report["warnings"].extend(measurement.warnings())
    if not descriptor.ok:
        report["status"] = failure_text(descriptor)
        report["failure"] = descriptor.failure.message if descriptor.failure else None
        return report

    desc = descriptor.value
    amps, normalized = normalized_amplitudes(desc, measurement.highest_coefficient)
    report["descriptor"] = {
        "method": desc.method.value,
        "first_harmonic": desc.first_harmonic,
        "count": len(desc.coefficients),
        "normalization_index": desc.normalization_index,
        "outline_length": desc.outline_length,
        "amplitudes": [[k, a] for k, a in amps],
        "amplitudes_normalized": normalized,
    }

    recon = measurement.reconstruction()
    if recon.ok:
        report["reconstruction"] = {
            "highest_coefficient": recon.value.highest_coefficient,
            "points": len(recon.value.polygon),
            "area": calibrated_area(recon.value.polygon.area(), cal),
        }
    else:
        report["status"] = failure_text(recon)
        report["failure"] = recon.failure.message if recon.failure else None
    return report
