from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from outline2fourier.types import DescriptorMethod, SplineStrategy

MIN_RESAMPLING_POWER = 4
# Resampling must stay below the 2^8 interpolated outline.
MAX_RESAMPLING_POWER = 7
MAX_NORMALIZATION_INDEX = 510


def max_highest_coefficient(power: int) -> int:
    return 2 ** (power - 1)


def check_resampling_power(power: int) -> str | None:
    if power < MIN_RESAMPLING_POWER or power > MAX_RESAMPLING_POWER:
        return f"resampling power must be in [{MIN_RESAMPLING_POWER}, {MAX_RESAMPLING_POWER}], got {power}"
    return None


def check_highest_coefficient(highest: int, power: int) -> str | None:
    limit = max_highest_coefficient(power)
    if highest < 0 or highest > limit:
        return f"highest coefficient must be in [0, {limit}] for resampling power {power}, got {highest}"
    return None


def check_normalization_index(index: int) -> str | None:
    if index < 0 or index > MAX_NORMALIZATION_INDEX:
        return f"normalization index must be in [0, {MAX_NORMALIZATION_INDEX}], got {index}"
    return None


class OutlineConfig(BaseModel):
    resampling_power: int = 6
    highest_coefficient: int = 10
    normalization_index: int = 0
    method: DescriptorMethod = DescriptorMethod.NONE
    spline_strategy: SplineStrategy = SplineStrategy.CIRCLE

    @field_validator("resampling_power")
    @classmethod
    def _validate_power(cls, value: int) -> int:
        msg = check_resampling_power(value)
        if msg:
            raise ValueError(msg)
        return value

    @field_validator("normalization_index")
    @classmethod
    def _validate_index(cls, value: int) -> int:
        msg = check_normalization_index(value)
        if msg:
            raise ValueError(msg)
        return value

    @field_validator("method", "spline_strategy", mode="before")
    @classmethod
    def _lower_enum(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _validate_highest(self) -> OutlineConfig:
        msg = check_highest_coefficient(self.highest_coefficient, self.resampling_power)
        if msg:
            raise ValueError(msg)
        return self


class SolverConfig(BaseModel):
    cg_max_iterations: int = Field(default=500, ge=1)
    cg_tolerance: float = Field(default=1e-6, gt=0.0)
    newton_max_iterations: int = Field(default=200, ge=1)


class CalibrationConfig(BaseModel):
    factor: float = 1.0  # units per pixel
    origin_x: float = 0.0
    origin_y: float = 0.0
    image_y_down: bool = True

    @field_validator("factor")
    @classmethod
    def _validate_factor(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("calibration.factor must be positive")
        return value


class ReportConfig(BaseModel):
    long_display: bool = False
    name: str = "outline"


class AppConfig(BaseModel):
    outline: OutlineConfig = Field(default_factory=OutlineConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    return AppConfig.model_validate(raw)
