from __future__ import annotations

from fastapi import APIRouter

from api.routes import health, livelog, memory


def get_api_router() -> APIRouter:
    router = APIRouter()

    router.include_router(health.router, tags=["health"])
    router.include_router(livelog.router, tags=["livelog"])
    router.include_router(memory.router, tags=["memory"])

    return router
