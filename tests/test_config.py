from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from vrt_buffer.config import ENV_CONFIG, RunConfig, load_run_config, normalize_run_config


def test_load_run_config_normalizes(tmp_path: Path) -> None:
    payload = {
        "pad": 12,
        "jobs": 4,
        "nodata": -32768,
        "compress": "deflate",
        "extensions": "TIF",
        "vrt": "mosaic.vrt",
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    config = load_run_config(path)

    assert config.margin == 12
    assert config.jobs == 4
    assert config.default_nodata == -32768.0
    assert config.compression == "deflate"
    assert config.extensions == (".TIF",)
    assert config.vrt == tmp_path / "mosaic.vrt"


def test_load_run_config_defaults_without_file() -> None:
    assert load_run_config() == RunConfig()


def test_load_run_config_from_environment(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "env.json"
    path.write_text(json.dumps({"margin": 5}), encoding="utf-8")
    monkeypatch.setenv(ENV_CONFIG, str(path))

    assert load_run_config().margin == 5


def test_normalize_run_config_rejects_unknown_keys() -> None:
    with pytest.raises(jsonschema.ValidationError):
        normalize_run_config({"margin": 2, "colour": "red"})


@pytest.mark.parametrize("key", ["tile_jobs", "extension"])
def test_normalize_run_config_only_aliases_pad_flags(key: str) -> None:
    with pytest.raises(jsonschema.ValidationError):
        normalize_run_config({key: 1})


def test_load_run_config_requires_object(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(TypeError, match="JSON object"):
        load_run_config(path)


def test_run_config_as_dict_round_trips() -> None:
    config = RunConfig(margin=7, jobs=2, compression="lzw", extensions=(".tif",))
    assert normalize_run_config(config.as_dict()) == config
