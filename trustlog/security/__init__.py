"""trustlog.security

Redaction + audit primitives.

Pattern library -> redaction engine -> audit recorder. The first two are
pure and shared freely; only the recorder touches the store.
"""

from trustlog.security.audit import AuditRecorder
from trustlog.security.patterns import Layer, Rule
from trustlog.security.redaction import (
    Blocked,
    Pass,
    RedactionOutcome,
    Rewritten,
    decision_layer,
    matched_labels,
    redact,
    redact_message,
)

__all__ = [
    "AuditRecorder",
    "Blocked",
    "Layer",
    "Pass",
    "RedactionOutcome",
    "Rewritten",
    "Rule",
    "decision_layer",
    "matched_labels",
    "redact",
    "redact_message",
]
