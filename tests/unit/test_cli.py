from __future__ import annotations

import io
import json
import logging
import shutil
from collections.abc import Iterator
from pathlib import Path

import pytest

from trustlog.cli import build_parser, main
from trustlog.core.database import Database
from trustlog.memory.chain import ChainBuilder


def _scaffold_repo(tmp_path: Path) -> Path:
    """Create a minimal repo root layout expected by the CLI."""

    repo_root = tmp_path
    src_root = Path(__file__).resolve().parents[2]

    (repo_root / "config").mkdir(parents=True, exist_ok=True)
    shutil.copy2(src_root / "config" / "default.yaml", repo_root / "config" / "default.yaml")
    (repo_root / "data").mkdir(parents=True, exist_ok=True)
    return repo_root


@pytest.fixture()
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    root = _scaffold_repo(tmp_path)
    monkeypatch.chdir(root)
    logger = logging.getLogger("trustlog")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield root
    logger.handlers[:], logger.level, logger.propagate = saved[0], saved[1], saved[2]


def test_cli_help_includes_subcommands(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main([])
    assert rc == 2
    out = capsys.readouterr().out
    for cmd in ("redact", "verify", "status", "stats", "backfill", "api"):
        assert cmd in out


def test_cli_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["--version"])
    assert rc == 0
    assert capsys.readouterr().out.strip().startswith("trustlog v")


def test_parser_backfill_options() -> None:
    args = build_parser().parse_args(["backfill", "log.jsonl", "--batch-size", "10", "--dry-run"])
    assert args.path == Path("log.jsonl")
    assert args.batch_size == 10
    assert args.dry_run is True


def test_redact_prints_rewritten_content(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["redact", "--text", "My password is hunter2, tell Tecto"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "decision: rewritten" in out
    assert "layer: 2" in out
    assert "credential:password" in out
    assert "hunter2" not in out
    assert "splntrb" in out


def test_redact_never_echoes_blocked_content(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["redact", "--text", "[PRIVATE] acquisition target is Foo Corp"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "decision: blocked" in out
    assert "reason: blocker:private" in out
    assert "Foo Corp" not in out


def test_redact_reads_stdin(capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("plain text"))
    assert main(["redact"]) == 0
    assert "decision: pass" in capsys.readouterr().out


def test_verify_and_status(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["verify", "alice"]) == 0
    assert "empty chain" in capsys.readouterr().out

    db = Database(repo / "data" / "trustlog.db")
    ChainBuilder(db).chain_batch("alice", ["a", "b", "c"])
    db.close()

    assert main(["verify", "alice"]) == 0
    assert "verified (3 links)" in capsys.readouterr().out

    assert main(["status", "alice"]) == 0
    out = capsys.readouterr().out
    assert "chain: user:alice:agent:reader" in out
    assert "- length: 3" in out


def test_verify_broken_chain_exits_nonzero(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = Database(repo / "data" / "trustlog.db")
    ChainBuilder(db).chain_batch("alice", ["a", "b", "c"])
    db.conn.execute("UPDATE memory_links SET previous_hash = ? WHERE sequence = 2", ("0" * 64,))
    db.close()

    assert main(["verify", "alice"]) == 1
    assert "BROKEN at sequence 2 (broken_link)" in capsys.readouterr().out


def test_verify_rejects_bad_owner(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["verify", "a:b"]) == 2
    assert "error:" in capsys.readouterr().err


def test_backfill_then_stats(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log = repo / "history.jsonl"
    records = [
        {"id": "h-1", "role": "user", "content": "hello"},
        {"id": "h-2", "role": "assistant", "content": "ping 10.0.0.8"},
        {"id": "h-3", "role": "user", "content": "[INTERNAL] do not share"},
    ]
    log.write_text("\n".join(json.dumps(r) for r in records) + "\n")

    assert main(["backfill", str(log), "--dry-run"]) == 0
    assert "- processed: 2" in capsys.readouterr().out

    assert main(["backfill", str(log), "--batch-size", "2"]) == 0
    out = capsys.readouterr().out
    assert "- processed: 2" in out
    assert "- blocked: 1" in out

    assert main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "- messages: 2" in out
    assert "- redacted: 1 (50.0%)" in out
    assert "- blocked: 1" in out


def test_backfill_missing_file(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["backfill", str(repo / "missing.jsonl")]) == 2
    assert "file not found" in capsys.readouterr().err


def test_backfill_counts_undecodable_lines(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log = repo / "history.jsonl"
    log.write_text(json.dumps({"id": "h-1", "role": "user", "content": "hello"}) + "\nnot json\n7\n")

    assert main(["backfill", str(log)]) == 1
    out = capsys.readouterr().out
    assert "- processed: 1" in out
    assert "- errors: 2" in out
