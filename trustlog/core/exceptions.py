"""trustlog.core.exceptions

Errors are part of the interface.

Blocked messages, duplicate deliveries and broken chains are *not* errors;
they come back as result values. What lives here is what callers must retry
or fix.
"""

from __future__ import annotations


class TrustlogError(Exception):
    """Base exception for trustlog."""


class ConfigError(TrustlogError):
    """Configuration is missing, invalid, or inconsistent."""


class StoreError(TrustlogError):
    """Store failures: schema, IO, or a transaction that could not commit."""


class DuplicateMessageError(StoreError):
    """A published message with this source message id already exists."""

    def __init__(self, source_message_id: str) -> None:
        super().__init__(f"source message already published: {source_message_id}")
        self.source_message_id = source_message_id


class MalformedInputError(TrustlogError):
    """Input rejected before any hash was computed."""
