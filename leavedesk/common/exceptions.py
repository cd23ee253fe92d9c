"""Domain exceptions rendered as RFC 7807 problem documents.

Every ``AppException`` carries its HTTP status, a short machine-readable
``error_type`` (the last segment of the problem ``type`` URI), a title and a
human-readable detail. Field-level problems go in ``errors``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

BASE_ERROR_URI = "https://leavedesk.app/errors"
PROBLEM_MEDIA_TYPE = "application/problem+json"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)

    def to_problem(self, instance: str) -> dict[str, Any]:
        return _problem(
            self.status_code, self.error_type, self.title, self.detail, instance, self.errors,
        )


class NotFoundException(AppException):
    """404: employee, leave request, holiday, grant or notification missing."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409: a unique value is already taken (email, holiday date per country)."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class ForbiddenException(AppException):
    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class ValidationException(AppException):
    """422 raised by services for rules pydantic cannot express."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


class InsufficientBalanceException(AppException):
    """422: requested days exceed the applicable leave balance."""

    def __init__(self, available: Decimal, requested: Decimal) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            status_code=422,
            error_type="insufficient-balance",
            title="Insufficient Balance",
            detail=(
                f"Insufficient leave balance. Available: {available} days, "
                f"Requested: {requested} days."
            ),
            errors={"balance": [f"available={available}", f"requested={requested}"]},
        )


class InvalidTransitionException(AppException):
    """409: the lifecycle does not allow *attempted* from *current*."""

    def __init__(self, current: Any, attempted: Any) -> None:
        self.current = getattr(current, "value", current)
        self.attempted = getattr(attempted, "value", attempted)
        super().__init__(
            status_code=409,
            error_type="invalid-transition",
            title="Invalid Transition",
            detail=f"Cannot {self.attempted} a leave request that is {self.current}.",
            errors={"status": [f"current={self.current}", f"attempted={self.attempted}"]},
        )


class ExternalServiceException(AppException):
    """502: the public-holiday provider failed or returned an unusable payload."""

    def __init__(self, service: str, detail: str) -> None:
        super().__init__(
            status_code=502,
            error_type="external-service-error",
            title=f"{service} Unavailable",
            detail=detail,
        )


# ── Problem document ────────────────────────────────────────────────

def _problem(
    status: int,
    error_type: str,
    title: str,
    detail: str,
    instance: str,
    errors: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance,
    }
    if errors:
        body["errors"] = errors
    return body


def _field_name(loc: tuple) -> str:
    # drop the leading "body" / "query" / "path" segment
    if len(loc) > 1:
        return ".".join(str(part) for part in loc[1:])
    return str(loc[0]) if loc else "unknown"


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_problem(request.url.path),
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        field_errors.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(
            err.get("msg", "Invalid value"),
        )

    return JSONResponse(
        status_code=422,
        content=_problem(
            422,
            "validation-error",
            "Validation Error",
            "Request validation failed.",
            request.url.path,
            field_errors,
        ),
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """401s from the auth dependency and routing 404/405s."""
    title = {401: "Unauthorized", 404: "Not Found", 405: "Method Not Allowed"}.get(
        exc.status_code, "HTTP Error",
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_problem(
            exc.status_code,
            title.lower().replace(" ", "-"),
            title,
            str(exc.detail),
            request.url.path,
        ),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the problem-document handlers; called from ``create_app()``."""
    app.add_exception_handler(AppException, _handle_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
