"""trustlog.core.config

Two config surfaces only:
1) `config/default.yaml` (optionally `config/user.yaml`)
2) Environment variables (`TRUSTLOG_` prefix, `__` for nesting)

The redaction policy is not configuration. There is no knob for it here, on
purpose, and there must never be one.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from trustlog.core.exceptions import ConfigError


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False

    @field_validator("level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return v


class ApiConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 5060
    auth_token: str = ""
    cors_origins: list[str] = Field(default_factory=list)


class StoreConfig(BaseModel):
    db_name: str = "trustlog.db"
    busy_timeout_s: float = 5.0


class LivelogConfig(BaseModel):
    queue_maxsize: int = 500
    feed_limit: int = 50
    backfill_batch_size: int = 100

    @field_validator("queue_maxsize", "feed_limit", "backfill_batch_size")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be >= 1")
        return v


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    data_dir: Path = Path("data")
    config_dir: Path = Path("config")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    livelog: LivelogConfig = Field(default_factory=LivelogConfig)

    model_config = {"env_prefix": "TRUSTLOG_", "env_nested_delimiter": "__"}

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.store.db_name

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"Config file must contain a mapping: {path}")

        return cls(**raw)

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        user_path = root / "config" / "user.yaml"
        if user_path.exists():
            return cls.from_yaml(user_path)
        return cls.from_yaml(root / "config" / "default.yaml")
