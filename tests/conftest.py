from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest  # noqa: E402

from vrt_buffer import config as run_config  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_run_config(monkeypatch) -> None:
    """Prevent a user config from bleeding into tests."""
    monkeypatch.delenv(run_config.ENV_CONFIG, raising=False)
