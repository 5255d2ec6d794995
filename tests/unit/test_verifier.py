from __future__ import annotations

from trustlog.core.database import Database
from trustlog.core.hashing import sha256_hex
from trustlog.core.metrics import MetricsRegistry
from trustlog.memory.chain import ChainBuilder, genesis_hash
from trustlog.memory.verifier import BrokenChain, ChainVerifier, EmptyChain, Verified

CHAIN = "user:alice:agent:reader"


def _build(db: Database, n: int = 5) -> None:
    ChainBuilder(db).chain_batch("alice", [f"fact {i}" for i in range(n)])


def test_empty_chain(db: Database) -> None:
    assert ChainVerifier(db).verify_owner("alice") == EmptyChain(chain_id=CHAIN)


def test_intact_chain_verifies(db: Database, metrics: MetricsRegistry) -> None:
    _build(db)
    ChainBuilder(db).chain_batch("alice", ["later fact"])

    result = ChainVerifier(db, metrics=metrics).verify(CHAIN)
    assert result == Verified(chain_id=CHAIN, length=6)
    assert metrics.counter("memory.verified").value == 1


def test_rewritten_previous_hash_is_reported_at_that_link(db: Database, metrics: MetricsRegistry) -> None:
    _build(db)
    db.conn.execute(
        "UPDATE memory_links SET previous_hash = ? WHERE chain_id = ? AND sequence = 3",
        ("f" * 64, CHAIN),
    )

    result = ChainVerifier(db, metrics=metrics).verify_owner("alice")
    assert isinstance(result, BrokenChain)
    assert result.at_sequence == 3
    assert result.reason == "broken_link"
    assert result.details["got_previous"] == "f" * 64
    assert metrics.counter("memory.broken").value == 1


def test_edited_content_hash_is_a_hash_mismatch(db: Database) -> None:
    _build(db)
    db.conn.execute(
        "UPDATE memory_links SET content_hash = ? WHERE chain_id = ? AND sequence = 2",
        (sha256_hex("forged"), CHAIN),
    )

    result = ChainVerifier(db).verify(CHAIN)
    assert isinstance(result, BrokenChain)
    assert result.at_sequence == 2
    assert result.reason == "hash_mismatch"


def test_deleted_link_breaks_the_next_one(db: Database) -> None:
    _build(db)
    db.conn.execute("DELETE FROM memory_links WHERE chain_id = ? AND sequence = 2", (CHAIN,))

    result = ChainVerifier(db).verify(CHAIN)
    assert isinstance(result, BrokenChain)
    assert result.at_sequence == 3
    assert result.reason == "broken_link"


def test_renumbered_tail_is_a_sequence_gap(db: Database) -> None:
    _build(db, n=3)
    db.conn.execute("UPDATE memory_links SET sequence = 10 WHERE chain_id = ? AND sequence = 3", (CHAIN,))

    result = ChainVerifier(db).verify(CHAIN)
    assert isinstance(result, BrokenChain)
    assert result.at_sequence == 10
    assert result.reason == "sequence_gap"


def test_verification_repairs_nothing(db: Database) -> None:
    _build(db)
    db.conn.execute("UPDATE memory_links SET link_hash = ? WHERE chain_id = ? AND sequence = 4", ("e" * 64, CHAIN))
    before = [tuple(r) for r in db.query("SELECT * FROM memory_links ORDER BY sequence")]

    v = ChainVerifier(db)
    assert isinstance(v.verify(CHAIN), BrokenChain)
    assert isinstance(v.verify(CHAIN), BrokenChain)
    assert [tuple(r) for r in db.query("SELECT * FROM memory_links ORDER BY sequence")] == before


def test_status(db: Database) -> None:
    v = ChainVerifier(db)
    empty = v.status("alice")
    assert empty.chain_length == 0
    assert empty.record_count == 0
    assert empty.latest_hash is None
    assert empty.genesis_hash == genesis_hash(CHAIN)

    links = ChainBuilder(db).chain_batch("alice", ["a", "b"])
    st = v.status("alice")
    assert st.chain_id == CHAIN
    assert st.chain_length == 2
    assert st.record_count == 2
    assert st.latest_link_id == links[-1].id
    assert st.latest_hash == links[-1].link_hash
