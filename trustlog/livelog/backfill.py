"""trustlog.livelog.backfill

Replay historical conversation logs into the feed.

Runs every message through the same publisher path as live traffic, minus
the broadcast. Already-published message ids are skipped, so a backfill can
be interrupted and rerun.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from trustlog.core.exceptions import MalformedInputError
from trustlog.core.models import IncomingMessage
from trustlog.livelog.publisher import Publisher, PublishStatus
from trustlog.security.redaction import Blocked, redact

logger = logging.getLogger(__name__)


@dataclass
class BackfillStats:
    processed: int = 0
    blocked: int = 0
    skipped: int = 0
    errors: int = 0

    def merge(self, other: BackfillStats) -> None:
        self.processed += other.processed
        self.blocked += other.blocked
        self.skipped += other.skipped
        self.errors += other.errors


def to_incoming(raw: Any) -> IncomingMessage:
    """Coerce a chat-log record. Accepts ``id`` as an alias for ``message_id``.

    Raises:
        MalformedInputError: the record is not a JSON object.
        ValidationError: the object is not a valid message.
    """

    if isinstance(raw, IncomingMessage):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedInputError(f"record must be an object, got {type(raw).__name__}")
    data = dict(raw)
    if "message_id" not in data and "id" in data:
        data["message_id"] = data.pop("id")
    return IncomingMessage.model_validate(data)


def read_jsonl(path: Path) -> Iterator[Any]:
    """Yield one decoded record per non-blank line.

    A line that is not valid JSON is logged and yielded as its raw text, so
    it reaches the batch as a malformed record and is counted, not fatal.
    """

    with path.open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record: Any = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("livelog_backfill_bad_line", extra={"path": str(path), "line": lineno, "error": e.msg})
                record = line
            yield record


def _chunks(items: Iterable[Any], size: int) -> Iterator[list[Any]]:
    batch: list[Any] = []
    for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


def _process_batch(publisher: Publisher, batch: list[Any], *, dry_run: bool) -> BackfillStats:
    stats = BackfillStats()
    for raw in batch:
        try:
            msg = to_incoming(raw)
        except (ValidationError, MalformedInputError):
            stats.errors += 1
            continue

        if dry_run:
            if isinstance(redact(msg.content), Blocked):
                stats.blocked += 1
            else:
                stats.processed += 1
            continue

        # Cheap pre-check; the unique constraint still backs it up.
        if publisher.feed.get_by_source_id(msg.message_id) is not None:
            stats.skipped += 1
            continue

        result = publisher.handle_message(msg, broadcast=False)
        if result.status is PublishStatus.PUBLISHED:
            stats.processed += 1
        elif result.status is PublishStatus.BLOCKED:
            stats.blocked += 1
        elif result.status is PublishStatus.DUPLICATE:
            stats.skipped += 1
        else:
            stats.errors += 1
    return stats


def backfill(
    publisher: Publisher,
    messages: Iterable[Any],
    *,
    batch_size: int = 100,
    dry_run: bool = False,
) -> BackfillStats:
    """Process historical messages in batches.

    ``dry_run`` only counts what would be published or blocked; nothing is
    written.
    """

    if batch_size <= 0:
        raise ValueError("batch_size must be >= 1")

    total = BackfillStats()
    for idx, batch in enumerate(_chunks(messages, batch_size), start=1):
        total.merge(_process_batch(publisher, batch, dry_run=dry_run))
        logger.info(
            "livelog_backfill_batch",
            extra={"batch": idx, "size": len(batch), "dry_run": dry_run, **vars(total)},
        )
    return total
