"""
Domain errors and the JSON error envelope.

Services raise ``NotFoundError`` / ``ConflictError``; the handlers below
turn them (and request validation failures) into a uniform body::

    {"detail": ..., "code": ..., "path": ..., "timestamp": ...}
"""
import logging
from datetime import datetime, timezone
from typing import NoReturn

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# SQLSTATE codes reported by PostgreSQL drivers.
_PG_UNIQUE_VIOLATION = "23505"
_PG_FOREIGN_KEY_VIOLATION = "23503"


class AppError(Exception):
    status_code = 400
    code = "app_error"
    detail = "Application error"

    def __init__(self, detail: str | None = None, code: str | None = None):
        if detail is not None:
            self.detail = detail
        if code is not None:
            self.code = code
        super().__init__(self.detail)


class BadRequestError(AppError):
    status_code = 400
    code = "bad_request"
    detail = "Bad request"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    detail = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    detail = "Resource already exists"


# ---------------------------------------------------------------------------
# IntegrityError classification
# ---------------------------------------------------------------------------

def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == _PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(exc.orig)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == _PG_FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY constraint failed" in str(exc.orig)


def raise_for_integrity_error(
    exc: IntegrityError,
    conflict_detail: str,
    missing_detail: str = "Referenced record not found",
) -> NoReturn:
    """
    Re-signal a known integrity failure as a domain error.

    A unique violation becomes ``ConflictError``.  A foreign-key violation
    means a referenced row does not exist and becomes ``NotFoundError``.
    Anything else is re-raised unchanged.
    """
    if is_unique_violation(exc):
        raise ConflictError(conflict_detail) from exc
    if is_foreign_key_violation(exc):
        raise NotFoundError(missing_detail) from exc
    raise exc


async def flush_or_raise(
    db: AsyncSession,
    conflict_detail: str,
    missing_detail: str = "Referenced record not found",
) -> None:
    """Flush pending writes, translating integrity failures to domain errors."""
    try:
        await db.flush()
    except IntegrityError as exc:
        raise_for_integrity_error(exc, conflict_detail, missing_detail)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

def _error_response(
    *,
    status_code: int,
    detail: str,
    code: str,
    request: Request,
    **extra,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "code": code,
            "path": request.url.path,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **extra,
        },
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(
        status_code=exc.status_code,
        detail=exc.detail,
        code=exc.code,
        request=request,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(
        status_code=exc.status_code,
        detail=detail,
        code="http_error",
        request=request,
    )


def _field_name(loc: tuple) -> str:
    # Drop the "body" / "query" / "path" prefix FastAPI puts on every location.
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(
        status_code=400,
        detail="Validation error",
        code="validation_error",
        request=request,
        errors=errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=500,
        detail="Internal server error",
        code="internal_server_error",
        request=request,
    )
