"""trustlog.core

Core primitives: store, models, hashing, time, config, errors.

If a module needs to exist, it should probably depend only on this package.
"""

from .config import Config
from .database import Database
from .exceptions import TrustlogError
from .hashing import content_hash, sha256_hex
from .models import AuditRecord, ChainStatus, Fact, IncomingMessage, MemoryChainLink, PublishedMessage
from .time import canonical_timestamp, parse_dt, utc_now

__all__ = [
    "AuditRecord",
    "ChainStatus",
    "Config",
    "Database",
    "Fact",
    "IncomingMessage",
    "MemoryChainLink",
    "PublishedMessage",
    "TrustlogError",
    "canonical_timestamp",
    "content_hash",
    "parse_dt",
    "sha256_hex",
    "utc_now",
]
