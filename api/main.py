from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.deps import load_config, open_database
from api.errors import ApiError, api_error_handler, trustlog_error_handler
from api.routes import get_api_router
from trustlog import __version__
from trustlog.core.config import Config
from trustlog.core.exceptions import TrustlogError
from trustlog.core.logging import configure_logging
from trustlog.livelog.broadcast import Broadcaster


def create_app(config: Config | None = None) -> FastAPI:
    start = time.monotonic()

    # Security check: refuse to start with empty auth_token unless explicitly overridden
    config = config or load_config()
    auth_token = str(config.api.auth_token or "")
    insecure_ok = os.environ.get("TRUSTLOG_INSECURE_OK", "").lower() in ("1", "true", "yes")

    if not auth_token and not insecure_ok:
        msg = (
            "SECURITY ERROR: API auth_token is empty\n"
            "\n"
            "Set TRUSTLOG_API__AUTH_TOKEN environment variable or add to config:\n"
            "  api:\n"
            "    auth_token: your-secret-token\n"
            "\n"
            "To run without auth (dev/test only), set TRUSTLOG_INSECURE_OK=1"
        )
        raise RuntimeError(msg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = start
        configure_logging(app.state.config.logging)

        created_db = False
        if getattr(app.state, "db", None) is None:
            app.state.db = open_database(app.state.config)
            created_db = True

        yield

        db = getattr(app.state, "db", None)
        if created_db and db is not None:
            db.close()

    openapi_tags = [
        {"name": "health", "description": "Liveness and version metadata."},
        {"name": "livelog", "description": "Publish to and read from the redacted public feed."},
        {"name": "memory", "description": "Append to, inspect and verify memory chains."},
    ]

    app = FastAPI(
        title="trustlog API",
        description="trustlog: redacted public feed and tamper-evident memory chains",
        version=__version__,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    # Available before lifespan runs so tests can drive the app without it.
    app.state.started_at = start
    app.state.config = config
    app.state.db = None
    app.state.broadcaster = Broadcaster(maxsize=config.livelog.queue_maxsize)

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(TrustlogError, trustlog_error_handler)

    cors_origins = config.api.cors_origins
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(get_api_router(), prefix="/api/v1")
    return app


# Module-level app for uvicorn (e.g. `uvicorn api.main:app`).
# Guarded so test imports don't crash when auth_token isn't configured.
try:
    app = create_app()
except (RuntimeError, TrustlogError):
    app = None
