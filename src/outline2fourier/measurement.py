from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np
import numpy.typing as npt

from outline2fourier.config import (
    AppConfig,
    OutlineConfig,
    SolverConfig,
    check_highest_coefficient,
    check_normalization_index,
    check_resampling_power,
    max_highest_coefficient,
)
from outline2fourier.descriptors.radius_theta import (
    RadiusThetaSamples,
    radius_theta_descriptor,
    reconstruct_radius_theta,
    resample_radius_vs_theta,
)
from outline2fourier.descriptors.tangent_curve import reconstruct_tangent_arclength
from outline2fourier.descriptors.tangent_fit import tangent_arclength_descriptor
from outline2fourier.fit.outline_spline import fit_outline_spline
from outline2fourier.fit.resample import interpolate_outline, resample_tangent_vs_arclength
from outline2fourier.types import (
    DescriptorMethod,
    FailureKind,
    FloatArray,
    Outcome,
    Point2D,
    Polygon2D,
    Reconstruction,
    SplineStrategy,
)

LOGGER = logging.getLogger("outline2fourier.measurement")

MAX_KNOTS = 1024


@dataclass(slots=True)
class ResampledOutline:
    polygon: Polygon2D
    # Polar samples, radius_theta method only.
    polar: RadiusThetaSamples | None = None


def _as_knot_array(points: Sequence[Point2D] | npt.ArrayLike) -> FloatArray:
    if isinstance(points, Sequence) and points and isinstance(points[0], Point2D):
        return np.asarray([(p.x, p.y) for p in points], dtype=np.float64).reshape(-1, 2)
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    return arr.reshape(-1, 2)


class OutlineMeasurement:
    """One digitized outline with its settings and lazily computed analysis stages.

    Every setting records the generation at which it last changed. A stage's
    cached outcome is keyed by the generations of all settings it depends on,
    directly or through upstream stages, so a change recomputes exactly the
    stages downstream of it.
    """

    INPUTS: ClassVar[tuple[str, ...]] = (
        "knots",
        "spline_strategy",
        "resampling_power",
        "method",
        "normalization_index",
        "highest_coefficient",
    )
    STAGE_DEPENDENCIES: ClassVar[dict[str, tuple[str, ...]]] = {
        "spline": ("knots", "spline_strategy"),
        "interpolated": ("spline",),
        "resampled": ("interpolated", "resampling_power", "method"),
        "descriptor": ("resampled", "method", "normalization_index"),
        "reconstruction": ("descriptor", "interpolated", "highest_coefficient"),
    }

    def __init__(
        self,
        points: Sequence[Point2D] | npt.ArrayLike | None = None,
        closed: bool = True,
        settings: OutlineConfig | None = None,
        solver: SolverConfig | None = None,
    ) -> None:
        cfg = settings or OutlineConfig()
        self.solver = solver or SolverConfig()
        self._knots = np.zeros((0, 2), dtype=np.float64)
        self._closed = closed
        self._spline_strategy = SplineStrategy(cfg.spline_strategy)
        self._resampling_power = cfg.resampling_power
        self._method = DescriptorMethod(cfg.method)
        self._normalization_index = cfg.normalization_index
        self._highest_coefficient = cfg.highest_coefficient

        self._generation = 0
        self._input_generations: dict[str, int] = {name: 0 for name in self.INPUTS}
        self._cache: dict[str, tuple[tuple[int, ...], Outcome]] = {}
        self._computers: dict[str, Callable[[], Outcome]] = {
            "spline": self._compute_spline,
            "interpolated": self._compute_interpolated,
            "resampled": self._compute_resampled,
            "descriptor": self._compute_descriptor,
            "reconstruction": self._compute_reconstruction,
        }

        if points is not None:
            msg = self.set_knots(points, closed=closed)
            if msg:
                raise ValueError(msg)

    @classmethod
    def from_config(
        cls,
        points: Sequence[Point2D] | npt.ArrayLike,
        cfg: AppConfig,
        closed: bool = True,
    ) -> OutlineMeasurement:
        return cls(points=points, closed=closed, settings=cfg.outline, solver=cfg.solver)

    # ----- settings -----

    @property
    def generation(self) -> int:
        return self._generation

    def input_generation(self, name: str) -> int:
        return self._input_generations[name]

    @property
    def knots(self) -> FloatArray:
        return self._knots.copy()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def spline_strategy(self) -> SplineStrategy:
        return self._spline_strategy

    @property
    def resampling_power(self) -> int:
        return self._resampling_power

    @property
    def method(self) -> DescriptorMethod:
        return self._method

    @property
    def normalization_index(self) -> int:
        return self._normalization_index

    @property
    def highest_coefficient(self) -> int:
        return self._highest_coefficient

    def settings(self) -> OutlineConfig:
        return OutlineConfig(
            resampling_power=self._resampling_power,
            highest_coefficient=self._highest_coefficient,
            normalization_index=self._normalization_index,
            method=self._method,
            spline_strategy=self._spline_strategy,
        )

    def _touch(self, name: str) -> None:
        self._generation += 1
        self._input_generations[name] = self._generation

    def set_knots(self, points: Sequence[Point2D] | npt.ArrayLike, closed: bool | None = None) -> str | None:
        arr = _as_knot_array(points)
        if len(arr) > MAX_KNOTS:
            return f"an outline takes at most {MAX_KNOTS} points, got {len(arr)}"
        if not np.all(np.isfinite(arr)):
            return "outline points must be finite"
        new_closed = self._closed if closed is None else bool(closed)
        if new_closed == self._closed and arr.shape == self._knots.shape and np.array_equal(arr, self._knots):
            return None
        self._knots = arr
        self._closed = new_closed
        self._touch("knots")
        return None

    def set_spline_strategy(self, strategy: SplineStrategy | str) -> str | None:
        try:
            value = SplineStrategy(strategy)
        except ValueError:
            return f"unknown spline strategy: {strategy}"
        if value is not self._spline_strategy:
            self._spline_strategy = value
            self._touch("spline_strategy")
        return None

    def set_resampling_power(self, power: int) -> str | None:
        msg = check_resampling_power(power)
        if msg:
            return msg
        if power == self._resampling_power:
            return None
        self._resampling_power = power
        self._touch("resampling_power")
        limit = max_highest_coefficient(power)
        if self._highest_coefficient > limit:
            self._highest_coefficient = limit
            self._touch("highest_coefficient")
        return None

    def set_highest_coefficient(self, highest: int) -> str | None:
        msg = check_highest_coefficient(highest, self._resampling_power)
        if msg:
            return msg
        if highest != self._highest_coefficient:
            self._highest_coefficient = highest
            self._touch("highest_coefficient")
        return None

    def set_normalization_index(self, index: int) -> str | None:
        msg = check_normalization_index(index)
        if msg:
            return msg
        if index != self._normalization_index:
            self._normalization_index = index
            self._touch("normalization_index")
        return None

    def set_method(self, method: DescriptorMethod | str) -> str | None:
        try:
            value = DescriptorMethod(method)
        except ValueError:
            return f"unknown descriptor method: {method}"
        if value is not self._method:
            self._method = value
            self._touch("method")
        return None

    def apply_settings(self, cfg: OutlineConfig) -> list[str]:
        # Power first so that the highest coefficient is checked against the new limit.
        results = [
            self.set_spline_strategy(cfg.spline_strategy),
            self.set_resampling_power(cfg.resampling_power),
            self.set_highest_coefficient(cfg.highest_coefficient),
            self.set_normalization_index(cfg.normalization_index),
            self.set_method(cfg.method),
        ]
        return [msg for msg in results if msg]

    # ----- cache graph -----

    @classmethod
    def transitive_inputs(cls, stage: str) -> tuple[str, ...]:
        found: set[str] = set()
        pending = [stage]
        while pending:
            for dep in cls.STAGE_DEPENDENCIES[pending.pop()]:
                if dep in cls.STAGE_DEPENDENCIES:
                    pending.append(dep)
                else:
                    found.add(dep)
        return tuple(name for name in cls.INPUTS if name in found)

    def _stage_key(self, stage: str) -> tuple[int, ...]:
        return tuple(self._input_generations[name] for name in self.transitive_inputs(stage))

    def is_cached(self, stage: str) -> bool:
        entry = self._cache.get(stage)
        return entry is not None and entry[0] == self._stage_key(stage)

    def _stage(self, stage: str) -> Outcome:
        key = self._stage_key(stage)
        entry = self._cache.get(stage)
        if entry is not None and entry[0] == key:
            return entry[1]
        outcome = self._computers[stage]()
        if not outcome.ok:
            LOGGER.debug("stage %s failed: %s", stage, outcome.failure.message if outcome.failure else "no value")
        self._cache[stage] = (key, outcome)
        return outcome

    def _compute_spline(self) -> Outcome:
        spline = fit_outline_spline(self._knots, closed=self._closed, strategy=self._spline_strategy)
        if spline is None:
            return Outcome.fail(FailureKind.NOT_MEASURED, f"not enough distinct points for a spline ({len(self._knots)})")
        return Outcome.success(spline)

    def _compute_interpolated(self) -> Outcome:
        spline = self._stage("spline")
        if not spline.ok:
            return Outcome(failure=spline.failure)
        return Outcome.success(interpolate_outline(spline.value))

    def _compute_resampled(self) -> Outcome:
        interp = self._stage("interpolated")
        if not interp.ok:
            return Outcome(failure=interp.failure)
        if not self._closed:
            return Outcome.fail(FailureKind.NOT_MEASURED, "outline is not closed")

        if self._method is DescriptorMethod.RADIUS_THETA:
            polar = resample_radius_vs_theta(
                interp.value,
                self._resampling_power,
                max_iterations=self.solver.cg_max_iterations,
                tolerance=self.solver.cg_tolerance,
            )
            if not polar.ok:
                return polar
            return Outcome.success(ResampledOutline(polygon=polar.value.polygon, polar=polar.value))
        if self._method is DescriptorMethod.TANGENT_ARCLENGTH:
            polygon = resample_tangent_vs_arclength(interp.value, self._resampling_power)
            return Outcome.success(ResampledOutline(polygon=polygon))
        return Outcome.fail(FailureKind.NOT_MEASURED, "no descriptor method selected")

    def _compute_descriptor(self) -> Outcome:
        resampled = self._stage("resampled")
        if not resampled.ok:
            return Outcome(failure=resampled.failure)

        if self._method is DescriptorMethod.RADIUS_THETA:
            return Outcome.success(radius_theta_descriptor(resampled.value.polar))
        return tangent_arclength_descriptor(
            resampled.value.polygon,
            normalization_index=self._normalization_index,
            max_iterations=self.solver.newton_max_iterations,
        )

    def _compute_reconstruction(self) -> Outcome:
        descriptor = self._stage("descriptor")
        if not descriptor.ok:
            return Outcome(failure=descriptor.failure)

        if self._method is DescriptorMethod.RADIUS_THETA:
            polar = self._stage("resampled").value.polar
            polygon = reconstruct_radius_theta(descriptor.value, polar, self._highest_coefficient)
            return Outcome.success(
                Reconstruction(
                    polygon=polygon,
                    highest_coefficient=self._highest_coefficient,
                    method=DescriptorMethod.RADIUS_THETA,
                )
            )
        return reconstruct_tangent_arclength(
            descriptor.value,
            self._highest_coefficient,
            self._stage("interpolated").value,
            max_iterations=self.solver.newton_max_iterations,
        )

    # ----- public stages -----

    def spline(self) -> Outcome:
        return self._stage("spline")

    def interpolated(self) -> Outcome:
        return self._stage("interpolated")

    def resampled(self) -> Outcome:
        return self._stage("resampled")

    def descriptor(self) -> Outcome:
        return self._stage("descriptor")

    def reconstruction(self) -> Outcome:
        return self._stage("reconstruction")

    def warnings(self) -> list[str]:
        out: list[str] = []
        for stage in self.STAGE_DEPENDENCIES:
            entry = self._cache.get(stage)
            if entry is not None and entry[0] == self._stage_key(stage):
                out.extend(entry[1].warnings)
        return out

    # ----- geometry of the interpolated outline -----

    def _interp_polygon(self) -> Polygon2D | None:
        interp = self.interpolated()
        return interp.value if interp.ok else None

    def area(self) -> float | None:
        polygon = self._interp_polygon()
        return None if polygon is None else polygon.area()

    def centroid(self) -> Point2D | None:
        polygon = self._interp_polygon()
        return None if polygon is None else polygon.centroid()

    def outline_length(self) -> float | None:
        spline = self.spline()
        return spline.value.length if spline.ok else None

    def perimeter(self) -> float | None:
        polygon = self._interp_polygon()
        return None if polygon is None else polygon.perimeter()

    def is_clockwise(self) -> bool | None:
        """Orientation of the digitized points, in y-up coordinates."""
        if len(self._knots) < 3:
            return None
        return Polygon2D.from_array(self._knots).is_clockwise()

    def summary(self) -> dict[str, Any]:
        centre = self.centroid()
        return {
            "knots": len(self._knots),
            "closed": self._closed,
            "area": self.area(),
            "centroid": None if centre is None else centre.as_tuple(),
            "outline_length": self.outline_length(),
            "perimeter": self.perimeter(),
            "clockwise": self.is_clockwise(),
        }
