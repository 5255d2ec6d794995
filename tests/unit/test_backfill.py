from __future__ import annotations

import json
from pathlib import Path

import pytest

from trustlog.core.database import Database
from trustlog.core.exceptions import MalformedInputError
from trustlog.livelog.backfill import backfill, read_jsonl, to_incoming
from trustlog.livelog.broadcast import Broadcaster
from trustlog.livelog.publisher import Publisher

HISTORY = [
    {"id": "h-1", "role": "user", "content": "hello", "timestamp": "2025-12-01T09:00:00Z"},
    {"id": "h-2", "role": "assistant", "content": "hi Tecto", "timestamp": "2025-12-01T09:00:05Z"},
    {"id": "h-3", "role": "user", "content": "[OFF THE RECORD] gossip", "timestamp": "2025-12-01T09:01:00Z"},
    {"message_id": "h-4", "role": "assistant", "content": "see srv3", "timestamp": "2025-12-01T09:02:00Z"},
]


def test_to_incoming_accepts_id_alias() -> None:
    msg = to_incoming({"id": "x-1", "role": "user", "content": "a"})
    assert msg.message_id == "x-1"


def test_backfill_processes_in_batches(db: Database) -> None:
    pub = Publisher(db)
    stats = backfill(pub, HISTORY, batch_size=3)

    assert stats.processed == 3
    assert stats.blocked == 1
    assert stats.skipped == 0
    assert stats.errors == 0
    assert pub.feed.count() == 3
    assert len(pub.audit.list_entries()) == 4


def test_backfill_rerun_skips_published(db: Database) -> None:
    pub = Publisher(db)
    backfill(pub, HISTORY)
    again = backfill(pub, HISTORY)

    assert again.processed == 0
    assert again.skipped == 3
    # Blocked ids never reach the feed, so they are audited again on rerun.
    assert again.blocked == 1
    assert pub.feed.count() == 3


def test_backfill_does_not_broadcast(db: Database) -> None:
    b = Broadcaster()
    _, q = b.subscribe()
    backfill(Publisher(db, broadcaster=b), HISTORY)
    assert q.empty()


def test_dry_run_writes_nothing(db: Database) -> None:
    pub = Publisher(db)
    stats = backfill(pub, HISTORY, dry_run=True)

    assert stats.processed == 3
    assert stats.blocked == 1
    assert pub.feed.count() == 0
    assert pub.audit.list_entries() == []


def test_invalid_records_are_counted(db: Database) -> None:
    bad = [{"id": "b-1", "role": "robot", "content": "x"}, {"role": "user", "content": "no id"}]
    stats = backfill(Publisher(db), bad)
    assert stats.errors == 2
    assert stats.processed == 0


def test_batch_size_must_be_positive(db: Database) -> None:
    with pytest.raises(ValueError):
        backfill(Publisher(db), HISTORY, batch_size=0)


def test_read_jsonl_skips_blank_lines(temp_dir: Path) -> None:
    path = temp_dir / "log.jsonl"
    path.write_text("\n".join(json.dumps(r) for r in HISTORY[:2]) + "\n\n")
    assert [r["id"] for r in read_jsonl(path)] == ["h-1", "h-2"]


def test_undecodable_line_is_counted(db: Database, temp_dir: Path) -> None:
    path = temp_dir / "log.jsonl"
    lines = [json.dumps(HISTORY[0]), '{"id": "h-x", "role": ', json.dumps(HISTORY[1])]
    path.write_text("\n".join(lines) + "\n")

    pub = Publisher(db)
    stats = backfill(pub, read_jsonl(path), batch_size=1)

    assert stats.errors == 1
    assert stats.processed == 2
    assert pub.feed.count() == 2


def test_non_object_record_is_counted(db: Database) -> None:
    stats = backfill(Publisher(db), [5, "text", {"id": "ok-1", "role": "user", "content": "hi"}])
    assert stats.errors == 2
    assert stats.processed == 1


def test_to_incoming_rejects_non_object() -> None:
    with pytest.raises(MalformedInputError):
        to_incoming(5)
