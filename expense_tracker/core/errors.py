"""Error taxonomy and the FastAPI handlers that render it.

Every failure that reaches a client is one of the `ErrorKind` members. Lower
layers raise `AppError`; only the handlers registered in `register_error_handlers`
write error responses, always with the envelope::

    {"status": "error", "message": "...", "errors": [{"field": ..., "message": ...}]}

`errors` is present only when there are field-level violations.
"""

from __future__ import annotations

import enum
import logging
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("expense_tracker.errors")

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class ErrorKind(str, enum.Enum):
    VALIDATION_FAILED = "validation_failed"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL_FAILURE = "internal_failure"


def status_for(kind: ErrorKind) -> int:
    if kind is ErrorKind.VALIDATION_FAILED:
        return status.HTTP_400_BAD_REQUEST
    if kind is ErrorKind.BAD_REQUEST:
        return status.HTTP_400_BAD_REQUEST
    if kind is ErrorKind.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    if kind is ErrorKind.CONFLICT:
        return status.HTTP_409_CONFLICT
    if kind is ErrorKind.INTERNAL_FAILURE:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    raise AssertionError(f"unmapped error kind: {kind!r}")


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class AppError(Exception):
    """A failure classified into one of the `ErrorKind` members.

    - kind: taxonomy member, decides the HTTP status
    - message: human-friendly text, safe to show to clients
    - errors: field-level violations (validation failures)
    - cause: the underlying exception, for logs and non-production stacks only
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        errors: Optional[Iterable[FieldViolation]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.errors: List[FieldViolation] = list(errors) if errors else []
        self.cause = cause

    @property
    def status_code(self) -> int:
        return status_for(self.kind)

    def __str__(self) -> str:
        if self.errors:
            fields = ", ".join(e.field for e in self.errors)
            return f"{self.message} ({self.kind.value}; fields: {fields})"
        return f"{self.message} ({self.kind.value})"

    # Constructors for the common kinds
    @classmethod
    def validation_failed(
        cls, errors: Iterable[FieldViolation], message: str = "Validation failed"
    ) -> "AppError":
        return cls(ErrorKind.VALIDATION_FAILED, message, errors=errors)

    @classmethod
    def bad_request(
        cls, message: str, errors: Optional[Iterable[FieldViolation]] = None
    ) -> "AppError":
        return cls(ErrorKind.BAD_REQUEST, message, errors=errors)

    @classmethod
    def not_found(cls, message: str = "Not found") -> "AppError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str, cause: Optional[BaseException] = None) -> "AppError":
        return cls(ErrorKind.CONFLICT, message, cause=cause)

    @classmethod
    def internal(
        cls, message: str = INTERNAL_ERROR_MESSAGE, cause: Optional[BaseException] = None
    ) -> "AppError":
        return cls(ErrorKind.INTERNAL_FAILURE, message, cause=cause)


def _format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def render_error(error: AppError, *, production: bool) -> JSONResponse:
    """Build the uniform error response for an `AppError`."""
    content: Dict[str, Any] = {"status": "error", "message": error.message}
    if error.errors:
        content["errors"] = [e.to_dict() for e in error.errors]
    if error.kind is ErrorKind.INTERNAL_FAILURE:
        if production:
            content["message"] = INTERNAL_ERROR_MESSAGE
        else:
            content["stack"] = _format_stack(error.cause or error)
    return JSONResponse(status_code=error.status_code, content=content)


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.is_production)


def app_error_handler(request: Request, exc: AppError):  # type: ignore
    if exc.kind is ErrorKind.INTERNAL_FAILURE:
        logger.error(
            "internal failure: %s",
            exc.message,
            exc_info=exc.cause or exc,
        )
    else:
        logger.info(
            "request failed",
            extra={"kind": exc.kind.value, "path": request.url.path},
        )
    return render_error(exc, production=_is_production(request))


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    violations = [
        FieldViolation(
            field=".".join(str(p) for p in err.get("loc", ())) or "request",
            message=err.get("msg", "Invalid value"),
        )
        for err in exc.errors()
    ]
    return render_error(
        AppError.validation_failed(violations), production=_is_production(request)
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException):  # type: ignore
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Not Found - {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "message": message},
        headers=getattr(exc, "headers", None),
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return render_error(
        AppError.internal(cause=exc), production=_is_production(request)
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, server_error_handler)
