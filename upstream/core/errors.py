"""Domain exceptions and the JSON error envelope used by the HTTP layer."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class UpStreamError(Exception):
    """Base class for errors raised by the entity layer."""

    code = "upstream_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class NotFound(UpStreamError, LookupError):
    """A milestone, project or underlying record does not exist."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(UpStreamError, ValueError):
    """Invalid input to a factory or setter. Raised before any state changes."""

    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class TransactionFailure(UpStreamError, RuntimeError):
    """A transactional operation was rolled back."""

    code = "transaction_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def upstream_exception_handler(request: Request, exc: UpStreamError):
    return ErrorEnvelope(status_code=exc.status_code, code=exc.code, message=str(exc) or exc.code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": jsonable_encoder(exc.errors())},
        )
    raise exc
