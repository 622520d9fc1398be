from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from outline2fourier.config import MAX_RESAMPLING_POWER, OutlineConfig
from outline2fourier.types import OutlineInput, Point2D

YAML_SUFFIXES = {".yaml", ".yml"}
TEXT_SUFFIXES = {".txt", ".xy", ".dat"}
OUTLINE_SUFFIXES = YAML_SUFFIXES | TEXT_SUFFIXES | {".json"}


def _parse_points(raw: Any, source: Path) -> list[Point2D]:
    if not isinstance(raw, list):
        raise ValueError(f"{source}: 'points' must be a list of [x, y] pairs")
    points: list[Point2D] = []
    for i, item in enumerate(raw):
        if isinstance(item, dict):
            pair = (item.get("x"), item.get("y"))
        else:
            pair = tuple(item) if isinstance(item, (list, tuple)) else (item,)
        if len(pair) != 2 or pair[0] is None or pair[1] is None:
            raise ValueError(f"{source}: point {i} is not an [x, y] pair: {item!r}")
        try:
            points.append(Point2D(float(pair[0]), float(pair[1])))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{source}: point {i} is not numeric: {item!r}") from exc
    return points


def _parse_text(text: str, source: Path) -> list[Point2D]:
    points: list[Point2D] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.split("#", 1)[0].strip()
        if not stripped:
            continue
        parts = stripped.replace(",", " ").split()
        if len(parts) != 2:
            raise ValueError(f"{source}:{lineno}: expected 'x y', got {line!r}")
        try:
            points.append(Point2D(float(parts[0]), float(parts[1])))
        except ValueError as exc:
            raise ValueError(f"{source}:{lineno}: coordinates are not numeric: {line!r}") from exc
    return points


def _check_settings(settings: dict[str, Any]) -> None:
    """Validate the settings a file carries on their own.

    A missing resampling power may come from the config file, so the
    highest coefficient is then only checked against the largest power.
    The merged settings are validated again before analysis.
    """
    candidate = {"highest_coefficient": 0, **settings}
    candidate.setdefault("resampling_power", MAX_RESAMPLING_POWER)
    OutlineConfig.model_validate(candidate)


def load_outline(path: str | Path) -> OutlineInput:
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Outline file not found: {source}")
    suffix = source.suffix.lower()
    text = source.read_text(encoding="utf-8")

    if suffix in TEXT_SUFFIXES:
        return OutlineInput(points=_parse_text(text, source), name=source.stem)
    if suffix not in YAML_SUFFIXES and suffix != ".json":
        allowed = ", ".join(sorted(OUTLINE_SUFFIXES))
        raise ValueError(f"Unsupported outline file extension: {source.suffix}. Allowed: {allowed}")

    raw = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    if isinstance(raw, list):
        raw = {"points": raw}
    if not isinstance(raw, dict):
        raise ValueError(f"{source}: expected a mapping with a 'points' list")

    settings = raw.get("settings") or {}
    if not isinstance(settings, dict):
        raise ValueError(f"{source}: 'settings' must be a mapping")
    _check_settings(settings)

    return OutlineInput(
        points=_parse_points(raw.get("points", []), source),
        closed=bool(raw.get("closed", True)),
        name=str(raw.get("name") or source.stem),
        settings=dict(settings),
    )


def outline_payload(outline: OutlineInput, settings: OutlineConfig | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": outline.name,
        "closed": outline.closed,
        "points": [[p.x, p.y] for p in outline.points],
    }
    if settings is not None:
        payload["settings"] = settings.model_dump(mode="json")
    elif outline.settings:
        payload["settings"] = dict(outline.settings)
    return payload


def save_outline(outline: OutlineInput, path: str | Path, settings: OutlineConfig | None = None) -> Path:
    out = Path(path)
    payload = outline_payload(outline, settings)
    if out.suffix.lower() == ".json":
        out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    else:
        # Python floats round-trip exactly through YAML repr.
        out.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return out
