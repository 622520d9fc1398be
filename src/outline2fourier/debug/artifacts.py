from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from outline2fourier.types import FourierDescriptor, Polygon2D


def ensure_debug_dir(path: str | Path) -> Path:
    out = Path(path)
    out.mkdir(parents=True, exist_ok=True)
    return out


def _polygon_payload(polygon: Polygon2D | None) -> dict[str, Any] | None:
    if polygon is None:
        return None
    return {"points": [[p.x, p.y] for p in polygon.points], "count": len(polygon)}


def save_outline_json(layers: dict[str, Polygon2D | None], out_path: str | Path) -> None:
    data = {name: _polygon_payload(polygon) for name, polygon in layers.items()}
    Path(out_path).write_text(json.dumps(data, indent=2), encoding="utf-8")


def save_descriptor_json(descriptor: FourierDescriptor | None, out_path: str | Path) -> None:
    if descriptor is None:
        data: dict[str, Any] = {"descriptor": None}
    else:
        data = {
            "method": descriptor.method.value,
            "normalization_index": descriptor.normalization_index,
            "first_harmonic": descriptor.first_harmonic,
            "outline_length": descriptor.outline_length,
            "coefficients": [
                {"harmonic": k, "real": float(c.real), "imag": float(c.imag)}
                for k, c in zip(descriptor.harmonics(), descriptor.coefficients)
            ],
        }
    Path(out_path).write_text(json.dumps(data, indent=2), encoding="utf-8")


def save_report_json(report: dict[str, Any], out_path: str | Path) -> None:
    Path(out_path).write_text(json.dumps(report, indent=2), encoding="utf-8")
