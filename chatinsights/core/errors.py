"""Error normalization and handlers."""

import logging
from typing import Optional, Sequence
from uuid import uuid4

from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from chatinsights.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id

    def details(self) -> Optional[dict]:
        return None


class ValidationError(AppError, ValueError):
    """A formula (or request) is rejected before any evaluation is attempted."""
    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, *, errors: Optional[Sequence[str]] = None, identifiers: Optional[Sequence[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = list(errors) if errors else [message]
        self.identifiers = list(identifiers or [])

    def details(self) -> Optional[dict]:
        return {"errors": self.errors, "identifiers": self.identifiers}


class EvaluationError(AppError, ValueError):
    """A formula failed to parse or evaluate."""
    code = "evaluation_error"
    status_code = 422

    def __init__(self, message: str, *, expression: Optional[str] = None, substituted_expression: Optional[str] = None, position: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.expression = expression
        self.substituted_expression = substituted_expression
        self.position = position

    def details(self) -> Optional[dict]:
        return {
            "expression": self.expression,
            "substituted_expression": self.substituted_expression,
            "position": self.position,
        }


class ProviderError(AppError):
    """The aggregate provider could not supply data for a group."""
    code = "provider_error"
    status_code = 502

    def __init__(self, message: str, *, group_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.group_id = group_id


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, details: Optional[dict] = None) -> dict:
    error = {"code": code, "message": message, "request_id": request_id}
    if details:
        error["details"] = details
    return {
        "error": error,
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.details())
    logger = logging.getLogger("chatinsights")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("chatinsights")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    errors = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    payload = _error_payload("validation_error", "Invalid request body", rid, {"errors": errors})
    logger = logging.getLogger("chatinsights")
    logger.warning("request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 422})
    response = JSONResponse(status_code=422, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("chatinsights")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
