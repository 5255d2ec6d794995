"""trustlog.core.models

Core domain models.

Persisted records are immutable. The feed and the chain are append-only.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from trustlog.core.hashing import is_hex_digest


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class AuditAction(StrEnum):
    REDACTED = "redacted"
    BLOCKED = "blocked"
    ALLOWED = "allowed"


class IncomingMessage(BaseModel):
    """A raw conversation message as delivered by the message source.

    Never persisted as-is. ``timestamp`` stays loose (string or datetime) and
    is normalised by the publisher.
    """

    role: Role
    content: str | None = None
    timestamp: datetime | str | None = None
    conversation_id: str | None = None
    message_id: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class PublishedMessage(BaseModel):
    """A redacted message that made it onto the public feed."""

    id: str
    conversation_id: str | None = None
    source_message_id: str
    role: Role
    content: str
    original_timestamp: datetime
    redaction_applied: bool
    patterns_matched: list[str] = Field(default_factory=list)
    blocked: bool = False
    session_label: str
    created_at: datetime

    model_config = {"frozen": True}


class AuditRecord(BaseModel):
    """Hash-only trail of one redaction decision."""

    id: str
    published_message_id: str | None = None
    original_content_hash: str
    redacted_content_hash: str
    action: AuditAction
    layer: int = Field(ge=0, le=5)
    patterns_fired: list[str] = Field(default_factory=list)
    processing_time_us: int = Field(ge=0)
    created_at: datetime

    model_config = {"frozen": True}


class Fact(BaseModel):
    """One extracted fact handed over by the extraction collaborator.

    The collaborator never assigns sequence numbers or hashes.
    """

    content: str | None = None
    owner: str = Field(..., min_length=1)
    source_document_hash: str | None = None

    model_config = {"frozen": True}

    @field_validator("source_document_hash")
    @classmethod
    def source_hash_must_be_digest(cls, v: str | None) -> str | None:
        if v is not None and not is_hex_digest(v):
            raise ValueError("source_document_hash must be 64 lowercase hex characters")
        return v


class MemoryChainLink(BaseModel):
    """One immutable link in an (owner, agent) memory chain."""

    id: str
    owner: str
    chain_id: str
    sequence: int = Field(ge=1)
    previous_hash: str
    content: str | None = None
    content_hash: str
    source_document_hash: str | None = None
    canonical_timestamp: datetime
    link_hash: str
    source_agent: str
    created_at: datetime | None = None

    model_config = {"frozen": True}


class ChainStatus(BaseModel):
    """Cheap monitoring view of a chain. Says nothing about integrity."""

    chain_id: str
    chain_length: int
    record_count: int
    latest_link_id: str | None = None
    latest_hash: str | None = None
    genesis_hash: str
