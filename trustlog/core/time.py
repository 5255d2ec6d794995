"""trustlog.core.time

The only time helper surface in the codebase.

Hashes commit to timestamps, so every timestamp that feeds a hash goes
through :func:`canonical_timestamp` and nothing else.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return an aware UTC datetime."""

    return datetime.now(tz=UTC)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_dt(value: str) -> datetime:
    """Parse an ISO-8601 datetime string into an aware UTC datetime.

    Accepts:
    - `Z` suffix
    - explicit offsets
    - naive timestamps (assumed UTC)

    Raises:
        ValueError: if parsing fails.
    """

    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"

    return ensure_utc(datetime.fromisoformat(v))


def parse_dt_or_now(value: str | datetime | None, *, now: datetime | None = None) -> datetime:
    """Lenient parse for inbound message timestamps: missing or garbage means "now"."""

    if isinstance(value, datetime):
        return ensure_utc(value)
    if value:
        try:
            return parse_dt(value)
        except ValueError:
            pass
    return now or utc_now()


def canonical_timestamp(dt: datetime) -> str:
    """Fixed-precision UTC ISO-8601 string used as hash input.

    Always microseconds, always a literal ``Z``: ``2026-02-03T12:00:00.000000Z``.
    """

    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
