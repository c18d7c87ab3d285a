from __future__ import annotations

import json
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import cast

import boto3
from prefect import flow, get_run_logger, task

from graphimport.config import ImportConfig
from graphimport.importer.driver import ImportReport
from graphimport.ir import dumps
from graphimport.parsers.onnx import OnnxParser


@task
def download_from_s3(s3_uri: str) -> Path:
    """
    Download a model from S3 to a temporary file. s3_uri like s3://bucket/key
    Requires AWS credentials in environment.
    """
    logger = get_run_logger()
    if not s3_uri.startswith("s3://"):
        raise ValueError("s3_uri must start with s3://")
    _, rest = s3_uri.split("s3://", 1)
    bucket, key = rest.split("/", 1)
    s3 = boto3.client("s3")
    tmp = Path(tempfile.mkstemp(prefix="graphimport_model_", suffix=Path(key).suffix)[1])
    s3.download_file(bucket, key, str(tmp))
    logger.info(f"Downloaded {s3_uri} to {tmp}")
    return tmp


@task
def import_model(local_path: Path, strict: bool = True) -> ImportReport:
    logger = get_run_logger()
    logger.info(f"Importing model at {local_path}")
    if local_path.suffix.lower() != ".onnx":
        raise ValueError(f"Unsupported model format: {local_path.suffix or '<none>'}")
    config = ImportConfig.from_env()
    config.strict = strict
    report = OnnxParser().parse_with_report(str(local_path), config=config)
    for failure in report.failures:
        logger.warning(f"{failure.node} failed [{failure.code}]: {failure.message}")
    return report


@task
def export_results(output_dir: str, report: ImportReport) -> str:
    out_path = Path(output_dir)
    out_path.mkdir(parents=True, exist_ok=True)
    graph_file = out_path / "graph.json"
    graph_file.write_text(dumps(report.graph, indent=2))
    report_file = out_path / "report.json"
    report_file.write_text(
        json.dumps(
            {
                "hooked": report.hooked,
                "generic": report.generic,
                "failures": [asdict(f) for f in report.failures],
            },
            indent=2,
        )
    )
    return str(graph_file)


@flow(name="graphimport-onnx-import")
def import_flow(s3_uri: str, output_dir: str, strict: bool = True) -> str:
    """
    S3 → import through hooks → export JSON graph and report
    """
    path = download_from_s3(s3_uri)
    report = import_model(path, strict=strict)
    out = export_results(output_dir, report)
    return cast(str, out)
