"""trustlog.livelog.publisher

Redact -> persist -> notify, once per inbound message.

Flow:
1. run the redaction engine on the message content
2. blocked: write a hash-only audit row, nothing else, no broadcast
3. otherwise: insert the published message and its audit row in one
   transaction, then broadcast to current subscribers

Redelivery of a message id is expected. The UNIQUE constraint on
``source_message_id`` is the only idempotency check; hitting it means the
message was already handled.
"""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass, field
from enum import StrEnum

from trustlog.core.database import Database, dt_to_iso
from trustlog.core.exceptions import DuplicateMessageError, StoreError
from trustlog.core.hashing import canonical_json, content_hash
from trustlog.core.metrics import REGISTRY, MetricsRegistry
from trustlog.core.models import AuditAction, AuditRecord, IncomingMessage, PublishedMessage
from trustlog.core.time import canonical_timestamp, parse_dt_or_now, utc_now
from trustlog.livelog.broadcast import Broadcaster
from trustlog.livelog.feed import LivelogFeed
from trustlog.security.audit import AuditRecorder
from trustlog.security.redaction import Blocked, redact

logger = logging.getLogger(__name__)


class PublishStatus(StrEnum):
    PUBLISHED = "published"
    DUPLICATE = "duplicate"
    BLOCKED = "blocked"
    ERROR = "error"


@dataclass(frozen=True)
class PublishResult:
    status: PublishStatus
    message: PublishedMessage | None = None
    audit: AuditRecord | None = None
    reason: str | None = None
    error: Exception | None = None
    delivered: int = 0

    @property
    def ok(self) -> bool:
        """Everything except a storage failure counts as handled."""
        return self.status is not PublishStatus.ERROR


def session_label(conversation_id: str | None) -> str:
    if not conversation_id:
        return "Unknown Session"
    return f"Session {conversation_id[:8]}"


def _elapsed_us(start_ns: int) -> int:
    return (time.monotonic_ns() - start_ns) // 1000


@dataclass
class Publisher:
    db: Database
    broadcaster: Broadcaster | None = None
    metrics: MetricsRegistry = field(default=REGISTRY)

    def __post_init__(self) -> None:
        self.audit = AuditRecorder(self.db)
        self.feed = LivelogFeed(self.db)

    def handle_message(self, message: IncomingMessage, *, broadcast: bool = True) -> PublishResult:
        """Process one inbound message. Never raises for blocked, duplicate or storage outcomes."""

        start_ns = time.monotonic_ns()
        outcome = redact(message.content)

        if isinstance(outcome, Blocked):
            return self._handle_blocked(message, outcome, start_ns)

        original = message.content or ""
        redaction_applied = outcome.content != original
        patterns = list(outcome.labels)

        published = PublishedMessage(
            id=str(uuid.uuid4()),
            conversation_id=message.conversation_id,
            source_message_id=message.message_id,
            role=message.role,
            content=outcome.content,
            original_timestamp=parse_dt_or_now(message.timestamp),
            redaction_applied=redaction_applied,
            patterns_matched=patterns,
            blocked=False,
            session_label=session_label(message.conversation_id),
            created_at=utc_now(),
        )
        processing_us = _elapsed_us(start_ns)

        try:
            with self.db.transaction() as conn:
                self._insert_message(conn, published)
                audit = self.audit.record(
                    conn,
                    original_content=message.content,
                    redacted_content_hash=content_hash(outcome.content),
                    action=AuditAction.REDACTED if redaction_applied else AuditAction.ALLOWED,
                    layer=outcome.layer,
                    patterns=patterns,
                    processing_time_us=processing_us,
                    published_message_id=published.id,
                )
        except DuplicateMessageError:
            self.metrics.counter("livelog.duplicate").inc()
            logger.info(
                "livelog_message_duplicate",
                extra={"message_id": message.message_id, "conversation_id": message.conversation_id},
            )
            return PublishResult(
                status=PublishStatus.DUPLICATE,
                message=self.feed.get_by_source_id(message.message_id),
            )
        except StoreError as e:
            self.metrics.counter("livelog.error").inc()
            logger.error(
                "livelog_publish_failed",
                extra={
                    "message_id": message.message_id,
                    "conversation_id": message.conversation_id,
                    "error": type(e).__name__,
                },
            )
            return PublishResult(status=PublishStatus.ERROR, error=e)

        self.metrics.counter("livelog.published").inc()
        self.metrics.timing("livelog.processing").observe(processing_us)

        delivered = 0
        if broadcast and self.broadcaster is not None:
            delivered = self.broadcaster.broadcast(published)

        logger.debug(
            "livelog_message_published",
            extra={
                "message_id": message.message_id,
                "action": str(audit.action),
                "layer": audit.layer,
                "processing_time_us": processing_us,
                "delivered": delivered,
            },
        )
        return PublishResult(status=PublishStatus.PUBLISHED, message=published, audit=audit, delivered=delivered)

    def _handle_blocked(self, message: IncomingMessage, outcome: Blocked, start_ns: int) -> PublishResult:
        processing_us = _elapsed_us(start_ns)

        # Metadata only. The content of a blocked message is never logged.
        logger.info(
            "livelog_message_blocked",
            extra={
                "message_id": message.message_id,
                "conversation_id": message.conversation_id,
                "reason": outcome.reason,
                "processing_time_us": processing_us,
            },
        )

        try:
            audit = self.audit.record_blocked(
                original_content=message.content,
                reason=outcome.reason,
                processing_time_us=processing_us,
            )
        except StoreError as e:
            self.metrics.counter("livelog.error").inc()
            logger.error(
                "livelog_blocked_audit_failed",
                extra={"message_id": message.message_id, "error": type(e).__name__},
            )
            return PublishResult(status=PublishStatus.ERROR, reason=outcome.reason, error=e)

        self.metrics.counter("livelog.blocked").inc()
        return PublishResult(status=PublishStatus.BLOCKED, audit=audit, reason=outcome.reason)

    @staticmethod
    def _insert_message(conn: sqlite3.Connection, m: PublishedMessage) -> None:
        try:
            conn.execute(
                """
                INSERT INTO livelog_messages (
                    id, conversation_id, source_message_id, role, content, original_timestamp,
                    redaction_applied, patterns_matched, blocked, session_label, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    m.id,
                    m.conversation_id,
                    m.source_message_id,
                    str(m.role),
                    m.content,
                    canonical_timestamp(m.original_timestamp),
                    1 if m.redaction_applied else 0,
                    canonical_json(m.patterns_matched),
                    0,
                    m.session_label,
                    dt_to_iso(m.created_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            if "source_message_id" in str(e):
                raise DuplicateMessageError(m.source_message_id) from e
            raise StoreError(str(e)) from e
