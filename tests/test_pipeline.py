import json

import pytest

from outline2fourier.config import AppConfig, OutlineConfig
from outline2fourier.types import OutlineInput, Point2D

SQUARE = [Point2D(20.0, 20.0), Point2D(120.0, 20.0), Point2D(120.0, 100.0), Point2D(20.0, 100.0)]


def test_merged_config_prefers_outline_settings():
    pytest.importorskip("cv2")
    from outline2fourier.pipeline import merged_config

    cfg = AppConfig(outline=OutlineConfig(method="radius_theta", highest_coefficient=20))
    outline = OutlineInput(points=SQUARE, settings={"resampling_power": 4, "highest_coefficient": 5})
    merged = merged_config(cfg, outline)
    assert merged.outline.resampling_power == 4
    assert merged.outline.highest_coefficient == 5
    assert merged.outline.method.value == "radius_theta"
    assert merged_config(cfg, OutlineInput(points=SQUARE)) is cfg


def test_run_analysis_writes_debug_artifacts(tmp_path):
    pytest.importorskip("cv2")
    from outline2fourier.pipeline import run_analysis

    cfg = AppConfig(outline=OutlineConfig(method="tangent_arclength", highest_coefficient=8))
    result = run_analysis(OutlineInput(points=SQUARE, name="box"), cfg, debug_dir=tmp_path / "debug")

    assert result.name == "box"
    assert result.report["status"] == "ok"
    assert set(result.report["timings"]) == {
        "spline_ms",
        "interpolate_ms",
        "resample_ms",
        "descriptor_ms",
        "reconstruction_ms",
    }
    assert len(result.csv_row) == len(result.csv_header)
    assert result.csv_header[0] == "box (area)"

    for name in ("outline.json", "descriptor.json", "report.json", "overlay.png"):
        assert (result.debug_dir / name).exists()
    layers = json.loads((result.debug_dir / "outline.json").read_text(encoding="utf-8"))
    assert layers["knots"]["count"] == 4
    assert layers["interpolated"]["count"] == 256
    assert layers["resampled"]["count"] == 64
    descriptor = json.loads((result.debug_dir / "descriptor.json").read_text(encoding="utf-8"))
    assert descriptor["coefficients"][0]["harmonic"] == 2


def test_run_analysis_reports_failures(tmp_path):
    pytest.importorskip("cv2")
    from outline2fourier.pipeline import run_analysis

    result = run_analysis(OutlineInput(points=SQUARE[:2]), AppConfig(), debug_dir=tmp_path)
    assert result.report["status"] == "not measured"
    assert result.display_lines == ["not measured"]
    assert json.loads((tmp_path / "descriptor.json").read_text(encoding="utf-8")) == {"descriptor": None}


def test_run_analysis_rejects_unreadable_image(tmp_path):
    pytest.importorskip("cv2")
    from outline2fourier.pipeline import run_analysis

    bogus = tmp_path / "sample.png"
    bogus.write_text("not an image", encoding="utf-8")
    with pytest.raises(ValueError, match="Failed to read image"):
        run_analysis(OutlineInput(points=SQUARE), AppConfig(), debug_dir=tmp_path / "debug", image_path=bogus)


def test_outline_settings_merge_with_config_power():
    pytest.importorskip("cv2")
    from outline2fourier.pipeline import merged_config

    outline = OutlineInput(points=SQUARE, settings={"highest_coefficient": 40})
    merged = merged_config(AppConfig(outline=OutlineConfig(resampling_power=7)), outline)
    assert merged.outline.highest_coefficient == 40
    assert merged.outline.resampling_power == 7

    with pytest.raises(ValueError):
        merged_config(AppConfig(), outline)
