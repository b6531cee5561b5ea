"""Run report construction helpers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from vrt_buffer.contracts import SCHEMA_VERSION, validate_run_report
from vrt_buffer.raster.models import PadResult
from vrt_buffer.raster.pipeline import RunResult, TileWorkResult


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _tile_status(work: TileWorkResult) -> dict[str, Any]:
    if not work.ok or work.result is None:
        return {
            "tile": work.tile,
            "status": "failed",
            "output": None,
            "error_kind": work.error_kind,
            "error": work.error,
        }
    status: dict[str, Any] = {
        "tile": work.tile,
        "status": "ok",
        "output": str(work.result.path),
        "width": work.result.extent.width,
        "height": work.result.extent.height,
        "margin": work.result.margin,
    }
    if isinstance(work.result, PadResult):
        status["filled_pixels"] = work.result.filled_pixels
    return status


def build_run_report(run: RunResult, options: Mapping[str, Any]) -> dict[str, Any]:
    """Create a run report dictionary."""
    return {
        "schema_version": SCHEMA_VERSION,
        "created_at": _utc_now(),
        "command": run.command,
        "options": {key: value for key, value in options.items()},
        "tiles": [_tile_status(work) for work in run.results],
        "errors": [f"{work.tile}: {work.error_kind}: {work.error}" for work in run.failures],
    }


def write_run_report(report: Mapping[str, Any], path: Path) -> Path:
    """Validate and write a run report as JSON."""
    validate_run_report(report)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
    return path
