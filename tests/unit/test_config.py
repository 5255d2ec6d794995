from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from trustlog.core.config import Config, LivelogConfig, LoggingConfig
from trustlog.core.exceptions import ConfigError


def test_defaults_file_loads(test_config: Config, temp_dir: Path) -> None:
    assert test_config.api.port == 5060
    assert test_config.livelog.queue_maxsize == 500
    assert test_config.db_path == temp_dir / "data" / "trustlog.db"


def test_missing_file_is_config_error(temp_dir: Path) -> None:
    with pytest.raises(ConfigError):
        Config.from_yaml(temp_dir / "nope.yaml")


def test_invalid_yaml_is_config_error(temp_dir: Path) -> None:
    p = temp_dir / "bad.yaml"
    p.write_text("api: [unclosed\n")
    with pytest.raises(ConfigError):
        Config.from_yaml(p)


def test_non_mapping_is_config_error(temp_dir: Path) -> None:
    p = temp_dir / "list.yaml"
    p.write_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        Config.from_yaml(p)


def test_user_yaml_takes_precedence(temp_dir: Path) -> None:
    cfg_dir = temp_dir / "config"
    cfg_dir.mkdir()
    (cfg_dir / "default.yaml").write_text("api:\n  port: 1111\n")
    assert Config.from_repo_defaults(temp_dir).api.port == 1111

    (cfg_dir / "user.yaml").write_text("api:\n  port: 2222\n")
    assert Config.from_repo_defaults(temp_dir).api.port == 2222


def test_config_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRUSTLOG_API__PORT", "6000")
    monkeypatch.setenv("TRUSTLOG_LOGGING__LEVEL", "debug")
    cfg = Config()  # BaseSettings reads env
    assert cfg.api.port == 6000
    assert cfg.logging.level == "DEBUG"


def test_validation() -> None:
    with pytest.raises(ValidationError):
        LoggingConfig(level="chatty")
    with pytest.raises(ValidationError):
        LivelogConfig(queue_maxsize=0)
