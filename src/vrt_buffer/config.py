"""Run configuration loading and normalization helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from vrt_buffer.contracts import validate_run_config
from vrt_buffer.raster.buffer import DEFAULT_NODATA
from vrt_buffer.raster.info import DEFAULT_EXTENSIONS

ENV_CONFIG = "VRT_BUFFER_CONFIG"

# Config keys may also use the pad subcommand's flag names.
_ALIASES = {
    "pad": "margin",
    "nodata": "default_nodata",
    "compress": "compression",
}


@dataclass(frozen=True)
class RunConfig:
    """Normalized defaults for pad and crop runs."""

    margin: int | None = None
    jobs: int = 1
    default_nodata: float = DEFAULT_NODATA
    compression: str | None = None
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    vrt: Path | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "jobs": self.jobs,
            "default_nodata": self.default_nodata,
            "compression": self.compression,
            "extensions": list(self.extensions),
            "vrt": str(self.vrt) if self.vrt else None,
        }
        if self.margin is not None:
            payload["margin"] = self.margin
        return payload


def _normalize_extensions(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise TypeError("extensions must be a string or list of strings.")
    return tuple(item if item.startswith(".") else f".{item}" for item in map(str, value) if item)


def normalize_run_config(payload: Mapping[str, Any], *, base_dir: Path | None = None) -> RunConfig:
    """Normalize a raw config payload into a RunConfig."""
    raw: dict[str, Any] = {}
    for key, value in payload.items():
        raw[_ALIASES.get(key, key)] = value
    raw.pop("schema_version", None)
    if isinstance(raw.get("extensions"), str):
        raw["extensions"] = [raw["extensions"]]
    validate_run_config(raw)

    vrt = raw.get("vrt")
    vrt_path = Path(vrt) if vrt else None
    if vrt_path is not None and base_dir is not None and not vrt_path.is_absolute():
        vrt_path = base_dir / vrt_path
    return RunConfig(
        margin=raw.get("margin"),
        jobs=int(raw.get("jobs", 1)),
        default_nodata=float(raw.get("default_nodata", DEFAULT_NODATA)),
        compression=raw.get("compression"),
        extensions=_normalize_extensions(raw.get("extensions", list(DEFAULT_EXTENSIONS))),
        vrt=vrt_path,
    )


def load_run_config(path: Path | None = None) -> RunConfig:
    """Load a run config file, falling back to $VRT_BUFFER_CONFIG, then defaults."""
    if path is None:
        env_path = os.environ.get(ENV_CONFIG)
        if not env_path:
            return RunConfig()
        path = Path(env_path)
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, Mapping):
        raise TypeError("Run config must be a JSON object.")
    return normalize_run_config(payload, base_dir=Path(path).parent)
