"""trustlog.core.hashing

One digest function, used everywhere a hash is persisted.

SHA-256, lowercase hex, 64 characters. Verification depends on the width;
do not swap the algorithm without migrating every stored chain.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

HEX_DIGEST_LEN = 64

_HEX_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def content_hash(content: str | None) -> str:
    """Digest of a piece of text. ``None`` hashes like the empty string."""

    return sha256_hex(content or "")


def is_hex_digest(value: object) -> bool:
    return isinstance(value, str) and _HEX_DIGEST_RE.match(value) is not None


def canonical_json(data: Any) -> str:
    """Canonical JSON serialization used for stored label lists and log details."""

    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
