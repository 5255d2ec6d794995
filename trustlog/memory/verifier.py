"""trustlog.memory.verifier

Walks a persisted chain and reports the first link that does not hold.

A broken chain is a finding, not a fault: it comes back as a value and
nothing is repaired. The scan is linear from genesis every time; once a link
is wrong every later hash is suspect, so there is no safe shortcut.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from trustlog.core.database import Database
from trustlog.core.metrics import REGISTRY, MetricsRegistry
from trustlog.core.models import ChainStatus
from trustlog.memory.chain import chain_id, compute_link_hash, genesis_hash, row_to_link

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Verified:
    chain_id: str
    length: int
    kind: Literal["verified"] = "verified"


@dataclass(frozen=True)
class EmptyChain:
    chain_id: str
    kind: Literal["empty_chain"] = "empty_chain"


@dataclass(frozen=True)
class BrokenChain:
    chain_id: str
    at_sequence: int
    reason: Literal["broken_link", "hash_mismatch", "sequence_gap"]
    details: dict[str, Any] = field(default_factory=dict)
    kind: Literal["broken_chain"] = "broken_chain"


VerificationResult = Verified | EmptyChain | BrokenChain


@dataclass
class ChainVerifier:
    db: Database
    metrics: MetricsRegistry = field(default=REGISTRY)

    def verify(self, chain: str) -> VerificationResult:
        rows = self.db.query(
            "SELECT * FROM memory_links WHERE chain_id = ? ORDER BY sequence ASC",
            (chain,),
        )
        if not rows:
            return EmptyChain(chain_id=chain)

        expected_previous = genesis_hash(chain)
        expected_sequence = 1

        for row in rows:
            link = row_to_link(row)

            if link.previous_hash != expected_previous:
                return self._broken(
                    chain,
                    link.sequence,
                    "broken_link",
                    {"link_id": link.id, "expected_previous": expected_previous, "got_previous": link.previous_hash},
                )

            if link.sequence != expected_sequence:
                return self._broken(
                    chain,
                    link.sequence,
                    "sequence_gap",
                    {"link_id": link.id, "expected_sequence": expected_sequence},
                )

            computed = compute_link_hash(
                sequence=link.sequence,
                previous_hash=link.previous_hash,
                chain=link.chain_id,
                content_digest=link.content_hash,
                source_document_hash=link.source_document_hash,
                timestamp=link.canonical_timestamp,
            )
            if computed != link.link_hash:
                return self._broken(
                    chain,
                    link.sequence,
                    "hash_mismatch",
                    {"link_id": link.id, "expected_hash": computed, "got_hash": link.link_hash},
                )

            expected_previous = link.link_hash
            expected_sequence += 1

        self.metrics.counter("memory.verified").inc()
        return Verified(chain_id=chain, length=len(rows))

    def verify_owner(self, owner: str) -> VerificationResult:
        return self.verify(chain_id(owner))

    def _broken(self, chain: str, sequence: int, reason: str, details: dict[str, Any]) -> BrokenChain:
        self.metrics.counter("memory.broken").inc()
        logger.warning(
            "memory_chain_broken",
            extra={"chain_id": chain, "at_sequence": sequence, "reason": reason},
        )
        return BrokenChain(chain_id=chain, at_sequence=sequence, reason=reason, details=details)  # type: ignore[arg-type]

    def status(self, owner: str) -> ChainStatus:
        """Aggregate view for monitoring. Does not verify anything."""

        chain = chain_id(owner)
        count = int(self.db.scalar("SELECT COUNT(*) FROM memory_links WHERE chain_id = ?", (chain,)) or 0)
        latest = self.db.query_one(
            "SELECT id, sequence, link_hash FROM memory_links WHERE chain_id = ? ORDER BY sequence DESC LIMIT 1",
            (chain,),
        )
        return ChainStatus(
            chain_id=chain,
            chain_length=0 if latest is None else int(latest["sequence"]),
            record_count=count,
            latest_link_id=None if latest is None else str(latest["id"]),
            latest_hash=None if latest is None else str(latest["link_hash"]),
            genesis_hash=genesis_hash(chain),
        )
