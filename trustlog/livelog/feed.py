"""trustlog.livelog.feed

Read side of the public feed.

Every query here runs against redacted content. The original text was never
stored, so there is nothing else to search.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from trustlog.core.database import Database, iso_to_dt
from trustlog.core.models import AuditAction, PublishedMessage, Role
from trustlog.core.time import canonical_timestamp, utc_now


class FeedStats(BaseModel):
    total_messages: int
    redacted_count: int
    blocked_count: int
    redaction_rate: float


def row_to_message(row: sqlite3.Row) -> PublishedMessage:
    return PublishedMessage(
        id=str(row["id"]),
        conversation_id=row["conversation_id"],
        source_message_id=str(row["source_message_id"]),
        role=Role(str(row["role"])),
        content=str(row["content"]),
        original_timestamp=iso_to_dt(str(row["original_timestamp"])) or utc_now(),
        redaction_applied=bool(int(row["redaction_applied"])),
        patterns_matched=json.loads(row["patterns_matched"] or "[]"),
        blocked=bool(int(row["blocked"])),
        session_label=str(row["session_label"] or ""),
        created_at=iso_to_dt(str(row["created_at"])) or utc_now(),
    )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class LivelogFeed:
    db: Database

    def _select(self, where: str, params: list[Any], limit: int) -> list[PublishedMessage]:
        q = f"SELECT * FROM livelog_messages WHERE blocked = 0 {where} ORDER BY original_timestamp DESC, rowid DESC LIMIT ?"
        rows = self.db.query(q, [*params, limit])
        return [row_to_message(r) for r in rows]

    def list_recent(self, limit: int = 50) -> list[PublishedMessage]:
        return self._select("", [], limit)

    def list_before(self, before: datetime, limit: int = 50) -> list[PublishedMessage]:
        """Page backwards from ``before`` (exclusive)."""
        return self._select("AND original_timestamp < ?", [canonical_timestamp(before)], limit)

    def list_by_role(self, role: Role | str, limit: int = 50) -> list[PublishedMessage]:
        return self._select("AND role = ?", [str(Role(role))], limit)

    def list_in_range(self, start: datetime, end: datetime, limit: int = 100) -> list[PublishedMessage]:
        return self._select(
            "AND original_timestamp >= ? AND original_timestamp <= ?",
            [canonical_timestamp(start), canonical_timestamp(end)],
            limit,
        )

    def search(self, term: str, limit: int = 50) -> list[PublishedMessage]:
        return self._select("AND content LIKE ? ESCAPE '\\'", [f"%{_escape_like(term)}%"], limit)

    def get(self, message_id: str) -> PublishedMessage | None:
        row = self.db.query_one("SELECT * FROM livelog_messages WHERE id = ?", (message_id,))
        return None if row is None else row_to_message(row)

    def get_by_source_id(self, source_message_id: str) -> PublishedMessage | None:
        row = self.db.query_one(
            "SELECT * FROM livelog_messages WHERE source_message_id = ?",
            (source_message_id,),
        )
        return None if row is None else row_to_message(row)

    def count(self) -> int:
        return int(self.db.scalar("SELECT COUNT(*) FROM livelog_messages WHERE blocked = 0") or 0)

    def last_message_time(self) -> datetime | None:
        value = self.db.scalar(
            "SELECT original_timestamp FROM livelog_messages WHERE blocked = 0 "
            "ORDER BY original_timestamp DESC LIMIT 1"
        )
        return iso_to_dt(value) if value else None

    def stats(self) -> FeedStats:
        total = self.count()
        redacted = int(
            self.db.scalar("SELECT COUNT(*) FROM livelog_messages WHERE redaction_applied = 1") or 0
        )
        blocked = int(
            self.db.scalar(
                "SELECT COUNT(*) FROM livelog_audit_log WHERE action = ?",
                (str(AuditAction.BLOCKED),),
            )
            or 0
        )
        rate = round(redacted / total * 100, 1) if total > 0 else 0.0
        return FeedStats(
            total_messages=total,
            redacted_count=redacted,
            blocked_count=blocked,
            redaction_rate=rate,
        )
