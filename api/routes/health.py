from __future__ import annotations

import os
import time
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.deps import get_broadcaster, get_db
from trustlog import __version__
from trustlog.core.database import Database
from trustlog.core.metrics import REGISTRY
from trustlog.livelog.broadcast import Broadcaster

router = APIRouter()


class HealthResponse(BaseModel):
    version: str
    uptime_seconds: float
    db_size_bytes: int
    subscribers: int
    metrics: dict[str, float]


@router.get("/health", response_model=HealthResponse)
def health(
    request: Request,
    db: Database = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> HealthResponse:
    started_at = float(getattr(request.app.state, "started_at", time.monotonic()))
    uptime = time.monotonic() - started_at

    db_path = Path(db.db_path)
    db_size = 0
    if db_path.exists():
        try:
            db_size = os.path.getsize(db_path)
        except OSError:
            db_size = 0

    return HealthResponse(
        version=__version__,
        uptime_seconds=uptime,
        db_size_bytes=db_size,
        subscribers=broadcaster.subscriber_count,
        metrics=REGISTRY.snapshot(),
    )
