from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from api.auth import AuthDep
from api.deps import get_audit, get_config, get_feed, get_publisher
from api.errors import ApiError
from api.schemas.livelog import FeedPage, IngestRequest, IngestResponse
from trustlog.core.config import Config
from trustlog.core.models import AuditAction, AuditRecord, IncomingMessage, Role
from trustlog.livelog.feed import FeedStats, LivelogFeed
from trustlog.livelog.publisher import Publisher, PublishStatus
from trustlog.security.audit import AuditRecorder

router = APIRouter(prefix="/livelog", dependencies=[AuthDep])


@router.post("/messages", response_model=IngestResponse)
def publish_message(req: IngestRequest, publisher: Publisher = Depends(get_publisher)) -> IngestResponse:
    result = publisher.handle_message(IncomingMessage(**req.model_dump()))

    if result.status is PublishStatus.ERROR:
        raise ApiError(
            code="store.unavailable",
            message="Message could not be stored; retry later",
            status=503,
            message_id=req.message_id,
        )

    if result.status is PublishStatus.BLOCKED:
        return IngestResponse(status=str(result.status), layer=1, reason=result.reason)

    return IngestResponse(
        status=str(result.status),
        message=result.message,
        layer=None if result.audit is None else result.audit.layer,
        delivered=result.delivered,
    )


@router.get("/messages", response_model=FeedPage)
def list_messages(
    limit: int | None = Query(default=None, ge=1, le=500),
    before: datetime | None = None,
    role: Role | None = None,
    q: str | None = Query(default=None, min_length=1, max_length=200),
    feed: LivelogFeed = Depends(get_feed),
    config: Config = Depends(get_config),
) -> FeedPage:
    if limit is None:
        limit = min(config.livelog.feed_limit, 500)
    if q is not None:
        items = feed.search(q, limit=limit)
    elif before is not None:
        items = feed.list_before(before, limit=limit)
    elif role is not None:
        items = feed.list_by_role(role, limit=limit)
    else:
        items = feed.list_recent(limit=limit)
    return FeedPage(items=items, limit=limit, total=feed.count())


@router.get("/stats", response_model=FeedStats)
def stats(feed: LivelogFeed = Depends(get_feed)) -> FeedStats:
    return feed.stats()


@router.get("/audit", response_model=list[AuditRecord])
def audit_log(
    action: AuditAction | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    audit: AuditRecorder = Depends(get_audit),
) -> list[AuditRecord]:
    return audit.list_entries(action=action, limit=limit)
