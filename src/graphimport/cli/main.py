from __future__ import annotations

from pathlib import Path

import typer

from graphimport.config import ImportConfig
from graphimport.errors import GraphImportError
from graphimport.flows.pipeline import import_flow
from graphimport.hooks import global_registry
from graphimport.ir import ValidationError, dumps, summary
from graphimport.parsers.onnx import OnnxParser
from graphimport.utils import configure_logging

app = typer.Typer(help="Import ONNX graphs through per-operator hooks")


def _config(lenient: bool, log_level: str | None) -> ImportConfig:
    config = ImportConfig.from_env()
    if lenient:
        config.strict = False
    if log_level:
        config.log_level = log_level.upper()
    configure_logging(config.log_level)
    return config


@app.command()
def hooks() -> None:
    """List registered import hooks."""
    for key, hook in global_registry.items():
        typer.echo(f"{key}  ->  {hook!r}")


@app.command()
def inspect(
    model: Path = typer.Argument(..., exists=True, dir_okay=False, help="ONNX model file"),
    lenient: bool = typer.Option(False, "--lenient", help="Skip and report failing nodes"),
    log_level: str | None = typer.Option(None, help="Logging level, e.g. DEBUG"),
) -> None:
    """
    Import a model and print a summary of the resulting graph.
    """
    config = _config(lenient, log_level)
    try:
        report = OnnxParser().parse_with_report(str(model), config=config)
    except (GraphImportError, ValidationError) as e:
        typer.echo(f"Import failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(summary(report.graph))
    typer.echo(f"Hooked nodes: {len(report.hooked)}, generic nodes: {len(report.generic)}")
    for failure in report.failures:
        typer.echo(f"FAILED {failure.node} [{failure.code}] {failure.message}", err=True)
    if report.failures:
        raise typer.Exit(code=2)


@app.command()
def convert(
    model: Path = typer.Argument(..., exists=True, dir_okay=False, help="ONNX model file"),
    output: Path = typer.Argument(..., help="Where to write the JSON graph"),
    lenient: bool = typer.Option(False, "--lenient", help="Skip and report failing nodes"),
    log_level: str | None = typer.Option(None, help="Logging level, e.g. DEBUG"),
) -> None:
    """
    Import a model and write the target graph as JSON.
    """
    config = _config(lenient, log_level)
    try:
        report = OnnxParser().parse_with_report(str(model), config=config)
    except (GraphImportError, ValidationError) as e:
        typer.echo(f"Import failed: {e}", err=True)
        raise typer.Exit(code=1)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(dumps(report.graph, indent=2))
    typer.echo(f"Graph written to: {output}")
    for failure in report.failures:
        typer.echo(f"FAILED {failure.node} [{failure.code}] {failure.message}", err=True)
    if report.failures:
        raise typer.Exit(code=2)


@app.command()
def run(s3_uri: str = typer.Argument(..., help="S3 URI to model, e.g. s3://bucket/key.onnx"),
        output_dir: str = typer.Option("./outputs", help="Directory to write results"),
        lenient: bool = typer.Option(False, "--lenient", help="Skip and report failing nodes")) -> None:
    """
    Run the Prefect import flow on a model stored in S3.
    """
    result_path = import_flow(s3_uri=s3_uri, output_dir=output_dir, strict=not lenient)
    typer.echo(f"Results written to: {result_path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
