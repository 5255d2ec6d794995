from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from trustlog.core.models import PublishedMessage, Role


class IngestRequest(BaseModel):
    role: Role
    content: str | None = None
    timestamp: datetime | str | None = None
    conversation_id: str | None = None
    message_id: str = Field(..., min_length=1)


class IngestResponse(BaseModel):
    """Outcome of one publish call.

    Blocked messages return no content and no message id, only the label
    that blocked them.
    """

    status: str
    message: PublishedMessage | None = None
    layer: int | None = None
    reason: str | None = None
    delivered: int = 0


class FeedPage(BaseModel):
    items: list[PublishedMessage]
    limit: int = Field(ge=1, le=500)
    total: int = Field(ge=0)
