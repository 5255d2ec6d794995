from __future__ import annotations

import shutil
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# uv/pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from trustlog.core.config import Config  # noqa: E402
from trustlog.core.database import Database  # noqa: E402
from trustlog.core.metrics import MetricsRegistry  # noqa: E402


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def test_config(temp_dir: Path) -> Config:
    """Config fixture that points data_dir to a temp directory."""

    cfg_src = REPO_ROOT / "config" / "default.yaml"
    cfg_dst_dir = temp_dir / "config"
    cfg_dst_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(cfg_src, cfg_dst_dir / "default.yaml")

    c = Config.from_yaml(cfg_dst_dir / "default.yaml")
    return c.model_copy(update={"data_dir": temp_dir / "data", "config_dir": cfg_dst_dir})


@pytest.fixture()
def db(temp_dir: Path) -> Iterator[Database]:
    database = Database(temp_dir / "trustlog.db")
    try:
        yield database
    finally:
        database.close()


@pytest.fixture()
def metrics() -> MetricsRegistry:
    """Fresh registry so counters don't leak between tests."""

    return MetricsRegistry()
