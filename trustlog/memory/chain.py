"""trustlog.memory.chain

Hash chains over agent-extracted facts.

One chain per (owner, agent). Link N commits to link N-1's hash, so editing
any stored link changes every hash after it. Link 1 commits to a genesis
hash derived from the chain id alone.

    link_hash = sha256(
        sequence | previous_hash | chain_id | content_hash |
        source_document_hash | canonical_timestamp
    )

Field order is part of the format.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from trustlog import MEMORY_GENESIS_NAMESPACE, READER_AGENT
from trustlog.core.database import Database, dt_to_iso, iso_to_dt
from trustlog.core.exceptions import MalformedInputError
from trustlog.core.hashing import content_hash, is_hex_digest, sha256_hex
from trustlog.core.metrics import REGISTRY, MetricsRegistry
from trustlog.core.models import Fact, MemoryChainLink
from trustlog.core.time import canonical_timestamp, utc_now

logger = logging.getLogger(__name__)


def chain_id(owner: str, agent: str = READER_AGENT) -> str:
    """Deterministic chain identifier: ``user:{owner}:agent:{agent}``."""

    for name, value in (("owner", owner), ("agent", agent)):
        if not value or not isinstance(value, str):
            raise MalformedInputError(f"{name} must be a non-empty string")
        # A ':' would let two different pairs render to the same id.
        if ":" in value:
            raise MalformedInputError(f"{name} must not contain ':'")
    return f"user:{owner}:agent:{agent}"


def genesis_hash(chain: str) -> str:
    """The required ``previous_hash`` of a chain's first link."""

    return sha256_hex(f"{MEMORY_GENESIS_NAMESPACE}:{chain}")


def compute_link_hash(
    *,
    sequence: int,
    previous_hash: str,
    chain: str,
    content_digest: str,
    source_document_hash: str | None,
    timestamp: datetime,
) -> str:
    parts = [
        str(sequence),
        previous_hash,
        chain,
        content_digest,
        source_document_hash or "",
        canonical_timestamp(timestamp),
    ]
    return sha256_hex("|".join(parts))


def row_to_link(row: sqlite3.Row) -> MemoryChainLink:
    return MemoryChainLink(
        id=str(row["id"]),
        owner=str(row["owner"]),
        chain_id=str(row["chain_id"]),
        sequence=int(row["sequence"]),
        previous_hash=str(row["previous_hash"]),
        content=row["content"],
        content_hash=str(row["content_hash"]),
        source_document_hash=row["source_document_hash"],
        canonical_timestamp=iso_to_dt(str(row["canonical_timestamp"])),
        link_hash=str(row["link_hash"]),
        source_agent=str(row["source_agent"]),
        created_at=iso_to_dt(row["created_at"]),
    )


@dataclass(frozen=True)
class ChainTail:
    sequence: int
    link_hash: str


@dataclass
class ChainBuilder:
    """Appends batches of facts to an owner's reader chain."""

    db: Database
    metrics: MetricsRegistry = field(default=REGISTRY)
    agent: str = field(default=READER_AGENT, init=False)

    def tail(self, chain: str) -> ChainTail | None:
        row = self.db.query_one(
            "SELECT sequence, link_hash FROM memory_links WHERE chain_id = ? ORDER BY sequence DESC LIMIT 1",
            (chain,),
        )
        return None if row is None else ChainTail(sequence=int(row[0]), link_hash=str(row[1]))

    def _normalize(
        self,
        owner: str,
        facts: Sequence[Fact | str | dict[str, Any] | None],
        source_document_hash: str | None,
    ) -> list[Fact]:
        if source_document_hash is not None and not is_hex_digest(source_document_hash):
            raise MalformedInputError("source_document_hash must be 64 lowercase hex characters")

        out: list[Fact] = []
        for i, raw in enumerate(facts):
            try:
                if isinstance(raw, Fact):
                    fact = raw
                elif raw is None or isinstance(raw, str):
                    fact = Fact(content=raw, owner=owner)
                elif isinstance(raw, dict):
                    fact = Fact.model_validate({"owner": owner, **raw})
                else:
                    raise MalformedInputError(f"fact {i}: unsupported type {type(raw).__name__}")
            except ValidationError as e:
                raise MalformedInputError(f"fact {i}: {e.errors()[0]['msg']}") from e

            if fact.owner != owner:
                raise MalformedInputError(f"fact {i}: owner does not match batch owner")
            if fact.source_document_hash is None and source_document_hash is not None:
                fact = fact.model_copy(update={"source_document_hash": source_document_hash})
            out.append(fact)
        return out

    def chain_batch(
        self,
        owner: str,
        facts: Sequence[Fact | str | dict[str, Any] | None],
        source_document_hash: str | None = None,
    ) -> list[MemoryChainLink]:
        """Link ``facts`` onto the owner's chain, in input order, and persist them.

        Every fact is validated before anything is hashed; one malformed fact
        rejects the whole batch. An empty batch returns ``[]`` without
        touching the store.

        Raises:
            MalformedInputError: bad owner, fact, or source hash.
            StoreError: the batch could not be committed (nothing was written).
        """

        chain = chain_id(owner, self.agent)
        normalized = self._normalize(owner, facts, source_document_hash)
        if not normalized:
            return []

        with self.db.chain_lock(chain), self.db.transaction() as conn:
            row = conn.execute(
                "SELECT sequence, link_hash FROM memory_links WHERE chain_id = ? ORDER BY sequence DESC LIMIT 1",
                (chain,),
            ).fetchone()
            sequence = 0 if row is None else int(row[0])
            previous = genesis_hash(chain) if row is None else str(row[1])

            ts = utc_now()
            created = utc_now()
            links: list[MemoryChainLink] = []
            for fact in normalized:
                sequence += 1
                digest = content_hash(fact.content)
                link = MemoryChainLink(
                    id=str(uuid.uuid4()),
                    owner=owner,
                    chain_id=chain,
                    sequence=sequence,
                    previous_hash=previous,
                    content=fact.content,
                    content_hash=digest,
                    source_document_hash=fact.source_document_hash,
                    canonical_timestamp=ts,
                    link_hash=compute_link_hash(
                        sequence=sequence,
                        previous_hash=previous,
                        chain=chain,
                        content_digest=digest,
                        source_document_hash=fact.source_document_hash,
                        timestamp=ts,
                    ),
                    source_agent=self.agent,
                    created_at=created,
                )
                conn.execute(
                    """
                    INSERT INTO memory_links (
                        id, owner, chain_id, sequence, previous_hash, content, content_hash,
                        source_document_hash, canonical_timestamp, link_hash, source_agent, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        link.id,
                        link.owner,
                        link.chain_id,
                        link.sequence,
                        link.previous_hash,
                        link.content,
                        link.content_hash,
                        link.source_document_hash,
                        canonical_timestamp(link.canonical_timestamp),
                        link.link_hash,
                        link.source_agent,
                        dt_to_iso(link.created_at),
                    ),
                )
                links.append(link)
                previous = link.link_hash

        self.metrics.counter("memory.links_appended").inc(len(links))
        logger.info(
            "memory_chain_appended",
            extra={"chain_id": chain, "count": len(links), "tail_sequence": links[-1].sequence},
        )
        return links
