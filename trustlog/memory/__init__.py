"""trustlog.memory

Tamper-evident memory chains: builder (append) and verifier (walk).
"""

from trustlog.memory.chain import ChainBuilder, chain_id, compute_link_hash, genesis_hash
from trustlog.memory.verifier import BrokenChain, ChainVerifier, EmptyChain, VerificationResult, Verified

__all__ = [
    "BrokenChain",
    "ChainBuilder",
    "ChainVerifier",
    "EmptyChain",
    "VerificationResult",
    "Verified",
    "chain_id",
    "compute_link_hash",
    "genesis_hash",
]
