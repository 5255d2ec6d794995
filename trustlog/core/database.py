"""trustlog.core.database

The store: three append-only tables in one SQLite file.

- ``livelog_messages``: what the public feed is allowed to show
- ``livelog_audit_log``: one hash-only row per redaction decision
- ``memory_links``: per-(owner, agent) hash chains

Rows are inserted, never updated. Every write goes through
:meth:`Database.transaction` so a reader never sees half a decision.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from trustlog.core.exceptions import StoreError, TrustlogError

SCHEMA_VERSION = 1

SCHEMA = """
-- ============================================================
-- Schema Version Tracking
-- ============================================================
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT DEFAULT (datetime('now'))
);

-- ============================================================
-- Livelog Messages (redacted, append-only)
-- ============================================================
CREATE TABLE IF NOT EXISTS livelog_messages (
    id TEXT PRIMARY KEY,
    conversation_id TEXT,
    source_message_id TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL CHECK(role IN ('user', 'assistant', 'system')),
    content TEXT NOT NULL,
    original_timestamp TEXT NOT NULL,
    redaction_applied INTEGER NOT NULL DEFAULT 0,
    patterns_matched TEXT NOT NULL DEFAULT '[]',
    blocked INTEGER NOT NULL DEFAULT 0 CHECK(blocked = 0),
    session_label TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_livelog_messages_ts ON livelog_messages(original_timestamp);
CREATE INDEX IF NOT EXISTS idx_livelog_messages_conversation ON livelog_messages(conversation_id);
CREATE INDEX IF NOT EXISTS idx_livelog_messages_role ON livelog_messages(role);

-- ============================================================
-- Livelog Audit Log (hashes only, never content)
-- ============================================================
CREATE TABLE IF NOT EXISTS livelog_audit_log (
    id TEXT PRIMARY KEY,
    published_message_id TEXT REFERENCES livelog_messages(id),
    original_content_hash TEXT NOT NULL,
    redacted_content_hash TEXT NOT NULL,
    action TEXT NOT NULL CHECK(action IN ('redacted', 'blocked', 'allowed')),
    layer INTEGER NOT NULL CHECK(layer >= 0 AND layer <= 5),
    patterns_fired TEXT NOT NULL DEFAULT '[]',
    processing_time_us INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    CHECK(action != 'blocked' OR published_message_id IS NULL)
);

CREATE INDEX IF NOT EXISTS idx_livelog_audit_action ON livelog_audit_log(action);
CREATE INDEX IF NOT EXISTS idx_livelog_audit_created ON livelog_audit_log(created_at);
CREATE INDEX IF NOT EXISTS idx_livelog_audit_message ON livelog_audit_log(published_message_id);

-- ============================================================
-- Memory Chain Links (hash chain per owner/agent, append-only)
-- ============================================================
CREATE TABLE IF NOT EXISTS memory_links (
    id TEXT PRIMARY KEY,
    owner TEXT NOT NULL,
    chain_id TEXT NOT NULL,
    sequence INTEGER NOT NULL CHECK(sequence >= 1),
    previous_hash TEXT NOT NULL,
    content TEXT,
    content_hash TEXT NOT NULL,
    source_document_hash TEXT,
    canonical_timestamp TEXT NOT NULL,
    link_hash TEXT NOT NULL,
    source_agent TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(chain_id, sequence)
);

CREATE INDEX IF NOT EXISTS idx_memory_links_owner ON memory_links(owner);
CREATE INDEX IF NOT EXISTS idx_memory_links_hash ON memory_links(link_hash);
"""


def dt_to_iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat()


def iso_to_dt(value: str | None) -> datetime | None:
    if value is None:
        return None
    # Accept Z suffix
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@dataclass
class Database:
    """SQLite store with explicit, serialized write transactions."""

    db_path: Path
    timeout_s: float = 5.0
    _chain_locks: dict[str, threading.Lock] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # isolation_level=None: we issue BEGIN/COMMIT ourselves.
        self.conn = sqlite3.connect(
            self.db_path,
            timeout=self.timeout_s,
            check_same_thread=False,
            isolation_level=None,
        )
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._chain_locks_guard = threading.Lock()
        self._init_schema()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def _init_schema(self) -> None:
        with self._lock:
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self.conn.executescript(SCHEMA)
            self.conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block of writes as one atomic unit.

        ``BEGIN IMMEDIATE`` takes SQLite's write lock up front, so a
        read-then-write inside the block is serialized against other
        processes sharing the file. Re-entrant: a nested call joins the
        outer transaction.
        """

        with self._lock:
            if self.conn.in_transaction:
                yield self.conn
                return

            try:
                self.conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError(f"could not begin transaction: {e}") from e

            try:
                yield self.conn
            except TrustlogError:
                self.conn.rollback()
                raise
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StoreError(str(e)) from e
            except BaseException:
                self.conn.rollback()
                raise

            try:
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StoreError(f"commit failed: {e}") from e

    @contextmanager
    def chain_lock(self, chain_id: str) -> Iterator[None]:
        """Logical per-chain lock serializing tail read-then-write for one chain."""

        with self._chain_locks_guard:
            lock = self._chain_locks.setdefault(chain_id, threading.Lock())
        with lock:
            yield

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self.conn.execute(sql, tuple(params)).fetchall()
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        with self._lock:
            try:
                return self.conn.execute(sql, tuple(params)).fetchone()
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        row = self.query_one(sql, params)
        return None if row is None else row[0]
