"""
asset_tracker.api.errors

Rendering of failures into HTTP responses.

Responsibilities:
- Turn `AuthError` into `{"success": false, "message": ...}` with the kind's status.
- Render plain HTTP errors with the same envelope.
- Add diagnostic fields only when the deployment exposes error details (dev).
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_401_UNAUTHORIZED

from asset_tracker.auth.errors import AuthError
from asset_tracker.settings import Settings


def auth_error_body(error: AuthError, *, expose_details: bool) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": error.kind.message}
    if expose_details:
        body["reason"] = error.kind.reason
        body["kind"] = error.kind.name
        if error.detail:
            body["detail"] = error.detail
    return body


def install_error_handlers(app: FastAPI, *, settings: Settings) -> None:
    @app.exception_handler(AuthError)
    async def _auth_error(_: Request, exc: AuthError) -> JSONResponse:
        headers = None
        if exc.status_code == HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=auth_error_body(exc, expose_details=settings.expose_error_details),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )
