from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, TypeAlias

import numpy as np
import numpy.typing as npt

FloatArray: TypeAlias = npt.NDArray[np.float64]
ComplexArray: TypeAlias = npt.NDArray[np.complex128]


class DescriptorMethod(str, Enum):
    NONE = "none"
    RADIUS_THETA = "radius_theta"
    TANGENT_ARCLENGTH = "tangent_arclength"


class SplineStrategy(str, Enum):
    CHORD = "chord"
    CIRCLE = "circle"


class FailureKind(str, Enum):
    NOT_MEASURED = "not_measured"
    NON_SIMPLE_OUTLINE = "non_simple_outline"
    NUMERICAL_FAILURE = "numerical_failure"


@dataclass(frozen=True, slots=True)
class Point2D:
    x: float
    y: float

    def translate(self, dx: float, dy: float) -> Point2D:
        return Point2D(self.x + dx, self.y + dy)

    def scale(self, sx: float, sy: float | None = None) -> Point2D:
        return Point2D(self.x * sx, self.y * (sx if sy is None else sy))

    def rotate(self, angle: float, about: Point2D | None = None) -> Point2D:
        cx, cy = (0.0, 0.0) if about is None else (about.x, about.y)
        c = math.cos(angle)
        s = math.sin(angle)
        dx = self.x - cx
        dy = self.y - cy
        return Point2D(cx + c * dx - s * dy, cy + s * dx + c * dy)

    def distance_to(self, other: Point2D) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(slots=True)
class Polygon2D:
    """Ordered vertices of an outline; treated as closed for every derived quantity."""

    points: list[Point2D]

    @classmethod
    def from_array(cls, arr: npt.ArrayLike) -> Polygon2D:
        data = np.asarray(arr, dtype=np.float64).reshape(-1, 2)
        return cls(points=[Point2D(float(x), float(y)) for x, y in data])

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, index: int) -> Point2D:
        return self.points[index]

    def as_array(self) -> FloatArray:
        if not self.points:
            return np.zeros((0, 2), dtype=np.float64)
        return np.asarray([(p.x, p.y) for p in self.points], dtype=np.float64)

    def signed_area(self) -> float:
        arr = self.as_array()
        if len(arr) < 3:
            return 0.0
        x = arr[:, 0]
        y = arr[:, 1]
        xn = np.roll(x, -1)
        yn = np.roll(y, -1)
        return 0.5 * float(np.sum(x * yn - xn * y))

    def area(self) -> float:
        return abs(self.signed_area())

    def is_clockwise(self) -> bool:
        # Mathematical convention: y axis pointing up.
        return self.signed_area() < 0.0

    def centroid(self) -> Point2D:
        arr = self.as_array()
        if len(arr) == 0:
            raise ValueError("centroid of an empty polygon is undefined")
        a = self.signed_area()
        if len(arr) < 3 or a == 0.0:
            mean = arr.mean(axis=0)
            return Point2D(float(mean[0]), float(mean[1]))
        x = arr[:, 0]
        y = arr[:, 1]
        xn = np.roll(x, -1)
        yn = np.roll(y, -1)
        cross = x * yn - xn * y
        cx = float(np.sum((x + xn) * cross)) / (6.0 * a)
        cy = float(np.sum((y + yn) * cross)) / (6.0 * a)
        return Point2D(cx, cy)

    def perimeter(self) -> float:
        arr = self.as_array()
        if len(arr) < 2:
            return 0.0
        closed = np.vstack([arr, arr[:1]])
        return float(np.linalg.norm(np.diff(closed, axis=0), axis=1).sum())

    def reversed_keep_first(self) -> Polygon2D:
        """Reverse the traversal direction while keeping the same starting vertex."""
        if len(self.points) < 2:
            return Polygon2D(points=list(self.points))
        return Polygon2D(points=[self.points[0]] + self.points[:0:-1])

    def transformed(
        self,
        scale: float = 1.0,
        rotation: float = 0.0,
        dx: float = 0.0,
        dy: float = 0.0,
        about: Point2D | None = None,
    ) -> Polygon2D:
        centre = about or Point2D(0.0, 0.0)
        out: list[Point2D] = []
        for p in self.points:
            q = Point2D(centre.x + scale * (p.x - centre.x), centre.y + scale * (p.y - centre.y))
            if rotation:
                q = q.rotate(rotation, about=centre)
            out.append(q.translate(dx, dy))
        return Polygon2D(points=out)


@dataclass(slots=True)
class OutlineInput:
    points: list[Point2D]
    closed: bool = True
    name: str = "outline"
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class FourierDescriptor:
    method: DescriptorMethod
    coefficients: ComplexArray
    normalization_index: int = 0
    # Harmonic index of coefficients[0].
    first_harmonic: int = 0
    outline_length: float | None = None

    def harmonics(self) -> list[int]:
        return list(range(self.first_harmonic, self.first_harmonic + len(self.coefficients)))

    def amplitudes(self) -> FloatArray:
        return np.abs(self.coefficients).astype(np.float64)


@dataclass(slots=True)
class Reconstruction:
    polygon: Polygon2D
    highest_coefficient: int
    method: DescriptorMethod


@dataclass(slots=True)
class AnalysisFailure:
    kind: FailureKind
    message: str


@dataclass(slots=True)
class Outcome:
    """Result of one analysis stage: a value, or a failure, never both."""

    value: Any = None
    failure: AnalysisFailure | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None and self.value is not None

    @classmethod
    def success(cls, value: Any, warnings: list[str] | None = None) -> Outcome:
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def fail(cls, kind: FailureKind, message: str, warnings: list[str] | None = None) -> Outcome:
        return cls(failure=AnalysisFailure(kind=kind, message=message), warnings=list(warnings or []))


@dataclass(slots=True)
class AnalysisResult:
    name: str
    report: dict[str, Any] = field(default_factory=dict)
    display_lines: list[str] = field(default_factory=list)
    csv_header: list[str] = field(default_factory=list)
    csv_row: list[str] = field(default_factory=list)
    debug_dir: Path | None = None
