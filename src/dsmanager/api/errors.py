# Error envelopes and exception handlers for the API layer.
# Created: 2026-10-19
#
# Every error leaves the API as {"error": "..."} (plus "details" when the
# upstream sent a body).  Rate-limit headers stashed on request.state by the
# rate-limit dependency are copied onto error responses too.

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dsmanager.opencloud.errors import OpenCloudError

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An error answered directly by a route (validation, not-found, rate limit)."""

    def __init__(
        self,
        status_code: int,
        error: str,
        *,
        details: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.headers = headers or {}


def error_response(
    request: Request,
    status_code: int,
    error: str,
    *,
    details: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if details is not None:
        content["details"] = details
    merged = {**getattr(request.state, "rate_limit_headers", {}), **(headers or {})}
    return JSONResponse(status_code=status_code, content=content, headers=merged)


def _details(body: Any) -> str | None:
    if body is None or body == "":
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body)


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(
        request, exc.status_code, exc.error, details=exc.details, headers=exc.headers
    )


async def _handle_opencloud_error(request: Request, exc: OpenCloudError) -> JSONResponse:
    return error_response(request, exc.status_code, exc.message, details=_details(exc.body))


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'body'}: {err.get('msg')}"
        for err in exc.errors()
    )
    return error_response(request, 400, f"Invalid request: {problems}")


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(request, exc.status_code, str(exc.detail), headers=exc.headers)


async def catch_unexpected(request: Request, call_next):
    """Answer anything the handlers above did not claim with a 500 envelope.

    Runs as the innermost middleware so the response still passes through CORS.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(request, 500, str(exc) or exc.__class__.__name__)


def install_error_handlers(app: FastAPI) -> None:
    """Register the {error} envelope handlers on *app*.

    Call before adding any other middleware so the catch-all sits inside it.
    """
    app.add_exception_handler(ApiError, _handle_api_error)
    app.add_exception_handler(OpenCloudError, _handle_opencloud_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.middleware("http")(catch_unexpected)
