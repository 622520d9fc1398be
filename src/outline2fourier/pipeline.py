from __future__ import annotations

import logging
from pathlib import Path
from time import perf_counter

import cv2

from outline2fourier.config import AppConfig, OutlineConfig
from outline2fourier.debug.artifacts import ensure_debug_dir, save_descriptor_json, save_outline_json, save_report_json
from outline2fourier.debug.overlays import save_outline_overlay
from outline2fourier.measurement import OutlineMeasurement
from outline2fourier.report import build_report, csv_header, csv_row, display_lines
from outline2fourier.types import AnalysisResult, OutlineInput, Polygon2D

LOGGER = logging.getLogger("outline2fourier.pipeline")


def merged_config(cfg: AppConfig, outline: OutlineInput) -> AppConfig:
    """Settings stored with the outline take precedence over the config file."""
    if not outline.settings:
        return cfg
    merged = cfg.outline.model_dump()
    merged.update(outline.settings)
    return cfg.model_copy(update={"outline": OutlineConfig.model_validate(merged)})


def _layers(measurement: OutlineMeasurement) -> dict[str, Polygon2D | None]:
    def value(outcome):
        return outcome.value if outcome.ok else None

    resampled = value(measurement.resampled())
    recon = value(measurement.reconstruction())
    return {
        "knots": Polygon2D.from_array(measurement.knots),
        "interpolated": value(measurement.interpolated()),
        "resampled": None if resampled is None else resampled.polygon,
        "reconstruction": None if recon is None else recon.polygon,
    }


def run_analysis(
    outline: OutlineInput,
    cfg: AppConfig,
    debug_dir: str | Path | None = None,
    image_path: str | Path | None = None,
) -> AnalysisResult:
    timings: dict[str, float] = {}
    cfg = merged_config(cfg, outline)

    t0 = perf_counter()
    measurement = OutlineMeasurement.from_config(outline.points, cfg, closed=outline.closed)
    spline = measurement.spline()
    timings["spline_ms"] = (perf_counter() - t0) * 1000.0

    t0 = perf_counter()
    measurement.interpolated()
    timings["interpolate_ms"] = (perf_counter() - t0) * 1000.0

    t0 = perf_counter()
    measurement.resampled()
    timings["resample_ms"] = (perf_counter() - t0) * 1000.0

    t0 = perf_counter()
    measurement.descriptor()
    timings["descriptor_ms"] = (perf_counter() - t0) * 1000.0

    t0 = perf_counter()
    measurement.reconstruction()
    timings["reconstruction_ms"] = (perf_counter() - t0) * 1000.0

    report = build_report(measurement, cfg)
    report["name"] = outline.name if cfg.report.name == "outline" else cfg.report.name
    report["timings"] = timings
    if not spline.ok:
        report["warnings"].append(f"spline not fitted: {spline.failure.message if spline.failure else ''}")

    result = AnalysisResult(
        name=report["name"],
        report=report,
        display_lines=display_lines(measurement, cfg.calibration, long_display=cfg.report.long_display),
        csv_header=csv_header(measurement, name=report["name"]),
        csv_row=csv_row(measurement, cfg.calibration),
    )

    if debug_dir is not None:
        out = ensure_debug_dir(debug_dir)
        layers = _layers(measurement)
        descriptor = measurement.descriptor()
        save_outline_json(layers, out / "outline.json")
        save_descriptor_json(descriptor.value if descriptor.ok else None, out / "descriptor.json")
        save_report_json(report, out / "report.json")
        image = None
        if image_path is not None:
            image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
            if image is None:
                raise ValueError(f"Failed to read image: {image_path}")
        save_outline_overlay(layers, out / "overlay.png", image=image)
        result.debug_dir = out

    LOGGER.info("analysis name=%s status=%s method=%s", result.name, report["status"], measurement.method.value)
    return result
