from __future__ import annotations

import logging

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import Settings

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._hsts = None
        if settings.security_enable_hsts:
            self._hsts = f"max-age={max(1, settings.security_hsts_max_age_seconds)}; includeSubDomains"

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._hsts:
            response.headers.setdefault("Strict-Transport-Security", self._hsts)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies whose declared Content-Length exceeds ``max_bytes``.

    Grid overrides are the only large payloads this service accepts.
    """

    def __init__(self, app, *, max_bytes: int) -> None:
        super().__init__(app)
        self._max_bytes = max(1, max_bytes)

    async def dispatch(self, request: Request, call_next) -> Response:
        raw_length = request.headers.get("content-length")
        if not raw_length:
            return await call_next(request)
        try:
            declared = int(raw_length)
        except ValueError:
            return JSONResponse(
                status_code=400,
                content={"message": "Invalid Content-Length header", "details": {"content_length": raw_length}},
            )
        if declared > self._max_bytes:
            logger.warning("Rejected %s %s: body of %s bytes", request.method, request.url.path, declared)
            return JSONResponse(
                status_code=413,
                content={
                    "message": "Request body too large",
                    "details": {"size_bytes": declared, "max_bytes": self._max_bytes},
                },
            )
        return await call_next(request)
