import pytest

from outline2fourier.config import OutlineConfig
from outline2fourier.measurement import OutlineMeasurement
from outline2fourier.outline_io import load_outline, save_outline
from outline2fourier.types import OutlineInput, Point2D


def _outline() -> OutlineInput:
    pts = [Point2D(0.1, 0.2), Point2D(10.3, 0.7), Point2D(11.0, 9.9), Point2D(1.0 / 3.0, 10.0)]
    return OutlineInput(points=pts, name="leaf-01")


def test_yaml_round_trip_keeps_points_and_settings(tmp_path):
    settings = OutlineConfig(method="tangent_arclength", resampling_power=5, highest_coefficient=12)
    path = save_outline(_outline(), tmp_path / "leaf.yaml", settings=settings)

    loaded = load_outline(path)
    assert loaded.name == "leaf-01"
    assert loaded.closed is True
    assert loaded.points == _outline().points
    assert OutlineConfig.model_validate(loaded.settings) == settings


def test_json_round_trip(tmp_path):
    path = save_outline(_outline(), tmp_path / "leaf.json")
    loaded = load_outline(path)
    assert loaded.points == _outline().points
    assert loaded.settings == {}


def test_reloaded_outline_measures_the_same(tmp_path):
    path = save_outline(_outline(), tmp_path / "leaf.yaml")
    a = OutlineMeasurement(_outline().points)
    b = OutlineMeasurement(load_outline(path).points)
    assert b.area() == a.area()
    assert b.outline_length() == a.outline_length()


def test_text_outline(tmp_path):
    path = tmp_path / "shell.txt"
    path.write_text("# x y\n0 0\n4, 0\n\n4 3  # corner\n0 3\n", encoding="utf-8")
    loaded = load_outline(path)
    assert loaded.name == "shell"
    assert [p.as_tuple() for p in loaded.points] == [(0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0)]


def test_bad_text_line(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text("0 0\n1 2 3\n", encoding="utf-8")
    with pytest.raises(ValueError, match="bad.txt:2"):
        load_outline(path)


def test_bad_points_and_settings(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("points:\n  - [0, 0]\n  - [1]\n", encoding="utf-8")
    with pytest.raises(ValueError, match="point 1"):
        load_outline(path)

    path.write_text("points: [[0, 0], [1, 0], [1, 1]]\nsettings:\n  resampling_power: 9\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_outline(path)


def test_missing_file_and_suffix(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_outline(tmp_path / "nope.yaml")

    other = tmp_path / "leaf.csv"
    other.write_text("0,0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported outline file extension"):
        load_outline(other)


def test_partial_settings_are_checked_after_merging(tmp_path):
    path = tmp_path / "leaf.yaml"
    path.write_text("points: [[0, 0], [4, 0], [4, 3]]\nsettings:\n  highest_coefficient: 40\n", encoding="utf-8")
    loaded = load_outline(path)
    assert loaded.settings == {"highest_coefficient": 40}

    path.write_text("points: [[0, 0], [4, 0], [4, 3]]\nsettings:\n  highest_coefficient: 65\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_outline(path)

    path.write_text(
        "points: [[0, 0], [4, 0], [4, 3]]\nsettings:\n  resampling_power: 4\n  highest_coefficient: 9\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        load_outline(path)
