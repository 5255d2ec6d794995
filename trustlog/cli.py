"""trustlog.cli

Command line interface entry point for trustlog.

Design constraints:
- argparse-based.
- Lazy imports: do not import heavy dependencies at parse time.
- Never print the content of a blocked message. Not even to a local terminal.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trustlog.core.config import Config
    from trustlog.core.database import Database

EPILOG = "Redact first. Hash everything. Repair nothing."


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trustlog",
        description="Redaction, audit and memory-chain integrity for a public conversation feed.",
        epilog=EPILOG,
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )

    sub = parser.add_subparsers(dest="command")

    p_redact = sub.add_parser("redact", help="Show the redaction decision for a piece of text")
    p_redact.add_argument("--text", default=None, help="Text to check (default: read stdin)")

    p_verify = sub.add_parser("verify", help="Verify an owner's memory chain")
    p_verify.add_argument("owner")

    p_status = sub.add_parser("status", help="Print an owner's memory chain status")
    p_status.add_argument("owner")

    sub.add_parser("stats", help="Print livelog feed statistics")

    p_backfill = sub.add_parser("backfill", help="Replay a JSONL chat log into the feed")
    p_backfill.add_argument("path", type=Path)
    p_backfill.add_argument("--batch-size", type=int, default=None)
    p_backfill.add_argument("--dry-run", action="store_true", help="Count only; write nothing.")

    p_api = sub.add_parser("api", help="Start FastAPI server")
    p_api.add_argument("--host", default=None)
    p_api.add_argument("--port", type=int, default=None)

    return parser


def _print_version() -> None:
    from trustlog import __version__

    print(f"trustlog v{__version__}")


def _load_config(ctx: CliContext) -> Config:
    from trustlog.core.config import Config

    if (ctx.repo_root / "config" / "default.yaml").exists() or (ctx.repo_root / "config" / "user.yaml").exists():
        return Config.from_repo_defaults(ctx.repo_root)
    return Config()


def _open_db(ctx: CliContext, config: Config) -> Database:
    from trustlog.core.database import Database

    db_path = config.db_path if config.db_path.is_absolute() else ctx.repo_root / config.db_path
    return Database(db_path, timeout_s=config.store.busy_timeout_s)


def _cmd_redact(ctx: CliContext, args: argparse.Namespace) -> int:
    from trustlog.security.redaction import Blocked, decision_layer, matched_labels, redact

    text = args.text if args.text is not None else sys.stdin.read()
    outcome = redact(text)

    print(f"decision: {outcome.kind}")
    print(f"layer: {decision_layer(text)}")
    print(f"labels: {', '.join(matched_labels(text)) or '-'}")
    if isinstance(outcome, Blocked):
        print(f"reason: {outcome.reason}")
        return 0
    print("content:")
    print(outcome.content)
    return 0


def _cmd_verify(ctx: CliContext, args: argparse.Namespace) -> int:
    from trustlog.core.exceptions import MalformedInputError
    from trustlog.memory.verifier import BrokenChain, ChainVerifier, Verified

    db = _open_db(ctx, _load_config(ctx))
    try:
        result = ChainVerifier(db).verify_owner(args.owner)
    except MalformedInputError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    finally:
        db.close()

    if isinstance(result, BrokenChain):
        print(f"{result.chain_id}: BROKEN at sequence {result.at_sequence} ({result.reason})")
        return 1
    if isinstance(result, Verified):
        print(f"{result.chain_id}: verified ({result.length} links)")
        return 0
    print(f"{result.chain_id}: empty chain")
    return 0


def _cmd_status(ctx: CliContext, args: argparse.Namespace) -> int:
    from trustlog.core.exceptions import MalformedInputError
    from trustlog.memory.verifier import ChainVerifier

    db = _open_db(ctx, _load_config(ctx))
    try:
        st = ChainVerifier(db).status(args.owner)
    except MalformedInputError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    finally:
        db.close()

    print(f"chain: {st.chain_id}")
    print(f"- length: {st.chain_length}")
    print(f"- records: {st.record_count}")
    print(f"- latest link: {st.latest_link_id or '-'}")
    print(f"- latest hash: {st.latest_hash or '-'}")
    print(f"- genesis hash: {st.genesis_hash}")
    return 0


def _cmd_stats(ctx: CliContext, args: argparse.Namespace) -> int:
    from trustlog.livelog.feed import LivelogFeed

    db = _open_db(ctx, _load_config(ctx))
    try:
        st = LivelogFeed(db).stats()
    finally:
        db.close()

    print("livelog stats")
    print(f"- messages: {st.total_messages}")
    print(f"- redacted: {st.redacted_count} ({st.redaction_rate}%)")
    print(f"- blocked: {st.blocked_count}")
    return 0


def _cmd_backfill(ctx: CliContext, args: argparse.Namespace) -> int:
    from trustlog.core.logging import configure_logging
    from trustlog.livelog.backfill import backfill, read_jsonl
    from trustlog.livelog.publisher import Publisher

    if not args.path.exists():
        print(f"error: file not found: {args.path}", file=sys.stderr)
        return 2

    config = _load_config(ctx)
    configure_logging(config.logging)
    batch_size = args.batch_size or config.livelog.backfill_batch_size

    db = _open_db(ctx, config)
    try:
        stats = backfill(Publisher(db), read_jsonl(args.path), batch_size=batch_size, dry_run=args.dry_run)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    finally:
        db.close()

    label = "backfill (dry run)" if args.dry_run else "backfill"
    print(label)
    print(f"- processed: {stats.processed}")
    print(f"- blocked: {stats.blocked}")
    print(f"- skipped (duplicates): {stats.skipped}")
    print(f"- errors: {stats.errors}")
    return 0 if stats.errors == 0 else 1


def _cmd_api(ctx: CliContext, args: argparse.Namespace) -> int:
    config = _load_config(ctx)

    host = args.host or config.api.host
    port = args.port or config.api.port

    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=False)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd())

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "redact": _cmd_redact,
        "verify": _cmd_verify,
        "status": _cmd_status,
        "stats": _cmd_stats,
        "backfill": _cmd_backfill,
        "api": _cmd_api,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
