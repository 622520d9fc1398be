from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from outline2fourier import __version__
from outline2fourier.config import AppConfig, CalibrationConfig, OutlineConfig, SolverConfig
from outline2fourier.types import OutlineInput, Point2D

LOGGER = logging.getLogger("outline2fourier.api")


class AnalyzeRequest(BaseModel):
    points: list[tuple[float, float]] = Field(..., description="Digitized outline points in image pixels")
    closed: bool = Field(default=True, description="Whether the outline is closed")
    name: str = Field(default="outline", description="Measurement name used in CSV headers")
    settings: OutlineConfig = Field(default_factory=OutlineConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    long_display: bool = Field(default=False, description="Include coefficient amplitudes in the display lines")


class AnalyzeResponse(BaseModel):
    status: str
    trace_id: str
    report: dict[str, object]
    display: list[str]
    csv_header: list[str]
    csv_row: list[str]


app = FastAPI(
    title="outline2fourier API",
    version=__version__,
    description="Local API for outline measurement and Fourier shape descriptors.",
)


@app.get("/health", tags=["system"])
def health() -> dict[str, object]:
    return {"status": "ok", "version": __version__}


@app.post("/analyze", response_model=AnalyzeResponse, tags=["analyze"])
def analyze(payload: AnalyzeRequest) -> AnalyzeResponse:
    from outline2fourier.pipeline import run_analysis

    trace_id = uuid4().hex[:12]
    cfg = AppConfig(outline=payload.settings, solver=payload.solver, calibration=payload.calibration)
    cfg.report.name = payload.name
    cfg.report.long_display = payload.long_display
    outline = OutlineInput(
        points=[Point2D(float(x), float(y)) for x, y in payload.points],
        closed=payload.closed,
        name=payload.name,
    )

    try:
        result = run_analysis(outline, cfg)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        LOGGER.exception("trace=%s analysis_failed", trace_id)
        raise HTTPException(status_code=500, detail=f"Analysis failed: {exc}") from exc

    LOGGER.info(
        "trace=%s analyze name=%s points=%d status=%s",
        trace_id,
        outline.name,
        len(outline.points),
        result.report.get("status"),
    )
    return AnalyzeResponse(
        status=str(result.report.get("status", "ok")),
        trace_id=trace_id,
        report=result.report,
        display=result.display_lines,
        csv_header=result.csv_header,
        csv_row=result.csv_row,
    )
