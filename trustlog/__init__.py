"""trustlog: the trust-and-audit core.

Two jobs, one promise:

- nothing unsafe reaches the public feed (layered redaction + hash-only audit)
- nothing an agent remembered can be rewritten quietly (per-agent hash chains)
"""

from __future__ import annotations

__all__ = [
    "__version__",
    "MEMORY_GENESIS_NAMESPACE",
    "BLOCKED_SENTINEL",
    "READER_AGENT",
]

__version__ = "1.0.0"

# Prefix mixed into every memory chain's genesis hash. Changing it orphans every existing chain.
MEMORY_GENESIS_NAMESPACE = "genesis:trustlog:memory-chain:v1"

# Stored in place of a redacted-content hash when a message never left layer 1.
BLOCKED_SENTINEL = "BLOCKED"

# The only agent allowed to append to memory chains.
READER_AGENT = "reader"
