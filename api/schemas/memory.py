from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FactIn(BaseModel):
    content: str | None = None
    source_document_hash: str | None = None


class AppendFactsRequest(BaseModel):
    facts: list[FactIn] = Field(default_factory=list)
    source_document_hash: str | None = None


class VerifyResponse(BaseModel):
    chain_id: str
    status: str
    length: int | None = None
    at_sequence: int | None = None
    reason: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
