"""Error taxonomy and the Litestar handlers that render it.

Service code raises :class:`AppError` subclasses; the handlers turn them into
``{"error": {"message", "code", "details"?}}`` JSON bodies. Every error
response carries ``Cache-Control: no-store`` so a failure is never cached at
the edge.
"""

import logging
from typing import Any

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from quire.lib import observability
from quire.lib.template import Template

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store"}


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


class ValidationError(AppError):
    """Malformed input, e.g. a reorder payload naming an item of another menu."""

    status_code = HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    """Absent entity, or one outside the caller's tenant scope."""

    status_code = HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(AppError):
    """Uniqueness violation, e.g. a duplicate slug within a site."""

    status_code = HTTP_409_CONFLICT
    code = "CONFLICT"


def accepts_html(request: Request) -> bool:
    """Check if the request accepts HTML responses (browser request)."""
    accept = request.headers.get("accept", "")
    return "text/html" in accept


def app_error_handler(request: Request, exc: AppError) -> Response:
    """Render a domain error as JSON."""
    return Response(
        content=exc.to_dict(),
        status_code=exc.status_code,
        media_type="application/json",
        headers=NO_STORE_HEADERS,
    )


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Render framework HTTP exceptions (routing, body validation) as JSON."""
    status_code = exc.status_code
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    error: dict[str, Any] = {"message": detail, "code": f"HTTP_{status_code}"}
    if getattr(exc, "extra", None):
        error["details"] = exc.extra

    return Response(
        content={"error": error},
        status_code=status_code,
        media_type="application/json",
        headers=NO_STORE_HEADERS,
    )


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Log an unexpected exception and answer with an opaque 500."""
    if not observability.exception(
        "Unhandled exception on {method} {path}",
        method=request.method,
        path=request.url.path,
    ):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return Response(
        content={"error": {"message": "Internal Server Error", "code": "INTERNAL_ERROR"}},
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/json",
        headers=NO_STORE_HEADERS,
    )


def public_error_handler(request: Request, exc: Exception) -> Response:
    """Public sites answer every failure with a generic not-found page.

    Internals are never leaked to visitors; unexpected errors are still logged.
    """
    is_expected = isinstance(exc, (AppError, HTTPException))
    if not is_expected:
        if not observability.exception(
            "Public render failed on {method} {path}",
            method=request.method,
            path=request.url.path,
        ):
            logger.exception("Public render failed on %s %s", request.method, request.url.path)

    html = None
    if accepts_html(request):
        html = Template("public/not_found").try_render(request.app.template_engine, site=request.scope.get("quire.site"))
    if html is not None:
        return Response(
            content=html,
            status_code=HTTP_404_NOT_FOUND,
            media_type="text/html",
            headers=NO_STORE_HEADERS,
        )

    return Response(
        content={"error": {"message": "Not found", "code": "NOT_FOUND"}},
        status_code=HTTP_404_NOT_FOUND,
        media_type="application/json",
        headers=NO_STORE_HEADERS,
    )


EXCEPTION_HANDLERS: dict[type[Exception], Any] = {
    AppError: app_error_handler,
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}

PUBLIC_EXCEPTION_HANDLERS: dict[type[Exception], Any] = {
    Exception: public_error_handler,
}
