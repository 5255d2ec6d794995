from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from fastapi import Request

from trustlog.core.config import Config
from trustlog.core.database import Database
from trustlog.livelog.broadcast import Broadcaster
from trustlog.livelog.feed import LivelogFeed
from trustlog.livelog.publisher import Publisher
from trustlog.memory.chain import ChainBuilder
from trustlog.memory.verifier import ChainVerifier
from trustlog.security.audit import AuditRecorder


@lru_cache
def _repo_root() -> Path:
    # Assume running from repo root (uvicorn started there). Fallback to parent of this file.
    here = Path(__file__).resolve()
    for p in [Path.cwd(), here.parent.parent]:
        if (p / "config" / "default.yaml").exists():
            return p
    return Path.cwd()


@lru_cache
def load_config() -> Config:
    return Config.from_repo_defaults(_repo_root())


def open_database(config: Config) -> Database:
    db_path = config.db_path if config.db_path.is_absolute() else _repo_root() / config.db_path
    return Database(db_path, timeout_s=config.store.busy_timeout_s)


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "config", None)
    return cfg or load_config()


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        db = open_database(get_config(request))
        request.app.state.db = db
    return db


def get_broadcaster(request: Request) -> Broadcaster:
    b = getattr(request.app.state, "broadcaster", None)
    if b is None:
        b = Broadcaster(maxsize=get_config(request).livelog.queue_maxsize)
        request.app.state.broadcaster = b
    return b


def get_publisher(request: Request) -> Publisher:
    return Publisher(get_db(request), broadcaster=get_broadcaster(request))


def get_feed(request: Request) -> LivelogFeed:
    return LivelogFeed(get_db(request))


def get_audit(request: Request) -> AuditRecorder:
    return AuditRecorder(get_db(request))


def get_chain_builder(request: Request) -> ChainBuilder:
    return ChainBuilder(get_db(request))


def get_verifier(request: Request) -> ChainVerifier:
    return ChainVerifier(get_db(request))
