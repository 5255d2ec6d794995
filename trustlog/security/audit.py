"""trustlog.security.audit

Database-backed redaction audit trail.

One row per message, whatever the outcome. Rows hold digests, the deciding
layer, the labels that fired and timing. They never hold content: a blocked
message's only trace is the hash of what it said.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import dataclass
from typing import Any

from trustlog import BLOCKED_SENTINEL
from trustlog.core.database import Database, dt_to_iso, iso_to_dt
from trustlog.core.hashing import canonical_json, content_hash
from trustlog.core.models import AuditAction, AuditRecord
from trustlog.core.time import utc_now


def _row_to_record(row: sqlite3.Row) -> AuditRecord:
    return AuditRecord(
        id=str(row["id"]),
        published_message_id=row["published_message_id"],
        original_content_hash=str(row["original_content_hash"]),
        redacted_content_hash=str(row["redacted_content_hash"]),
        action=AuditAction(str(row["action"])),
        layer=int(row["layer"]),
        patterns_fired=json.loads(row["patterns_fired"] or "[]"),
        processing_time_us=int(row["processing_time_us"]),
        created_at=iso_to_dt(str(row["created_at"])) or utc_now(),
    )


@dataclass
class AuditRecorder:
    """Writes and reads `livelog_audit_log`."""

    db: Database

    def record(
        self,
        conn: sqlite3.Connection,
        *,
        original_content: str | None,
        redacted_content_hash: str,
        action: AuditAction,
        layer: int,
        patterns: list[str],
        processing_time_us: int,
        published_message_id: str | None = None,
    ) -> AuditRecord:
        """Insert one audit row on an open transaction's connection.

        The caller owns the transaction so the row commits (or not) together
        with its published message.
        """

        if action is AuditAction.BLOCKED and published_message_id is not None:
            raise ValueError("blocked audit records never reference a published message")

        rec = AuditRecord(
            id=str(uuid.uuid4()),
            published_message_id=published_message_id,
            original_content_hash=content_hash(original_content),
            redacted_content_hash=redacted_content_hash,
            action=action,
            layer=layer,
            patterns_fired=list(patterns),
            processing_time_us=max(0, int(processing_time_us)),
            created_at=utc_now(),
        )
        conn.execute(
            """
            INSERT INTO livelog_audit_log (
                id, published_message_id, original_content_hash, redacted_content_hash,
                action, layer, patterns_fired, processing_time_us, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                rec.id,
                rec.published_message_id,
                rec.original_content_hash,
                rec.redacted_content_hash,
                str(rec.action),
                rec.layer,
                canonical_json(rec.patterns_fired),
                rec.processing_time_us,
                dt_to_iso(rec.created_at),
            ),
        )
        return rec

    def record_blocked(
        self,
        *,
        original_content: str | None,
        reason: str,
        processing_time_us: int,
    ) -> AuditRecord:
        with self.db.transaction() as conn:
            return self.record(
                conn,
                original_content=original_content,
                redacted_content_hash=BLOCKED_SENTINEL,
                action=AuditAction.BLOCKED,
                layer=1,
                patterns=[reason],
                processing_time_us=processing_time_us,
            )

    def list_entries(self, *, action: AuditAction | str | None = None, limit: int = 100) -> list[AuditRecord]:
        q = "SELECT * FROM livelog_audit_log WHERE 1=1"
        params: list[Any] = []
        if action is not None:
            q += " AND action = ?"
            params.append(str(AuditAction(action)))
        q += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)
        return [_row_to_record(r) for r in self.db.query(q, params)]

    def for_message(self, published_message_id: str) -> AuditRecord | None:
        row = self.db.query_one(
            "SELECT * FROM livelog_audit_log WHERE published_message_id = ?",
            (published_message_id,),
        )
        return None if row is None else _row_to_record(row)

    def count_by_action(self) -> dict[str, int]:
        rows = self.db.query("SELECT action, COUNT(*) FROM livelog_audit_log GROUP BY action")
        counts = {str(a): 0 for a in AuditAction}
        for r in rows:
            counts[str(r[0])] = int(r[1])
        return counts
