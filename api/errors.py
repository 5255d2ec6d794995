from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from trustlog.core.exceptions import MalformedInputError, StoreError, TrustlogError


class ApiError(Exception):
    def __init__(self, code: str, message: str, status: int = 400, **extra: object) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.extra = extra


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    body = {"error": {"code": exc.code, "message": exc.message, **exc.extra}}
    return JSONResponse(status_code=exc.status, content=body)


async def trustlog_error_handler(request: Request, exc: TrustlogError) -> JSONResponse:
    if isinstance(exc, MalformedInputError):
        status, code = 422, "input.malformed"
    elif isinstance(exc, StoreError):
        status, code = 503, "store.unavailable"
    else:
        status, code = 500, "internal"
    body = {"error": {"code": code, "message": str(exc)}}
    return JSONResponse(status_code=status, content=body)
