from __future__ import annotations

import csv
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from outline2fourier.config import load_config
from outline2fourier.outline_io import load_outline

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    """outline2fourier command-line interface."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(name)s %(levelname)s %(message)s")


@app.command()
def analyze(
    outline: Path = typer.Option(..., "--outline", exists=True, readable=True, help="Outline file (.yaml, .json, .txt)"),
    config: Path | None = typer.Option(None, "--config", exists=True, readable=True, help="YAML config path"),
    method: str | None = typer.Option(None, "--method", help="Descriptor method: none | radius_theta | tangent_arclength"),
    power: int | None = typer.Option(None, "--power", help="Resampling power override (4..7)"),
    highest: int | None = typer.Option(None, "--highest", help="Highest kept coefficient override"),
    long_display: bool = typer.Option(False, "--long", help="List normalized coefficient amplitudes"),
    csv_out: Path | None = typer.Option(None, "--csv", help="Append the CSV field list to this file"),
    debug: Path | None = typer.Option(None, "--debug", help="Debug artifacts output directory"),
    image: Path | None = typer.Option(None, "--image", exists=True, readable=True, help="Sample image for the overlay"),
) -> None:
    """Measure an outline and compute its Fourier shape descriptors."""
    from outline2fourier.pipeline import run_analysis

    try:
        cfg = load_config(config)
        data = load_outline(outline)
        overrides = {"method": method, "resampling_power": power, "highest_coefficient": highest}
        for key, value in overrides.items():
            if value is not None:
                data.settings[key] = value
        if long_display:
            cfg.report.long_display = True
        result = run_analysis(data, cfg, debug_dir=debug, image_path=image)
    except Exception as exc:  # pragma: no cover - CLI boundary
        console.print(f"[red]Failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    status = result.report.get("status", "ok")
    colour = "green" if status == "ok" else "yellow"
    console.print(f"[{colour}]{result.name}:[/{colour}] {status}")
    for line in result.display_lines:
        console.print(f"   {line}")
    for warning in result.report.get("warnings", []):
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    timings = result.report.get("timings") or {}
    if timings:
        table = Table(title="Timings (ms)")
        table.add_column("stage")
        table.add_column("ms", justify="right")
        for stage, ms in timings.items():
            table.add_row(stage.removesuffix("_ms"), f"{ms:.2f}")
        console.print(table)

    if csv_out is not None:
        new_file = not csv_out.exists()
        with csv_out.open("a", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh)
            if new_file:
                writer.writerow(result.csv_header)
            writer.writerow(result.csv_row)
        console.print(f"[cyan]CSV:[/cyan] {csv_out}")
    if result.debug_dir is not None:
        console.print(f"[cyan]Debug artifacts:[/cyan] {result.debug_dir}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Host for local API server"),
    port: int = typer.Option(8000, "--port", min=1, max=65535, help="Port for local API server"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
) -> None:
    """Run the local outline analysis API server."""
    import uvicorn

    endpoint = f"http://{host}:{port}"
    console.print(f"[green]Serving on {endpoint}[/green]")
    console.print(f"[cyan]OpenAPI:[/cyan] {endpoint}/openapi.json")
    uvicorn.run("outline2fourier.api_server:app", host=host, port=port, reload=reload)


if __name__ == "__main__":  # pragma: no cover
    app()
