"""
RFC 7807 Problem Details exception handling.

Every error leaves the API as ``application/problem+json``. Domain errors
raised by the services carry their own ``code`` and HTTP status; framework
errors are mapped onto the same shape.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import uuid
from datetime import datetime, timezone

from stockroom.services.errors import InventoryError

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://stockroom.local/problems"


def _new_trace_id() -> str:
    return str(uuid.uuid4())[:12]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ErrorCode(str, Enum):
    """Error codes for failures raised outside the services."""

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


HTTP_STATUS_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}

TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Validation Error",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class ProblemDetail(BaseModel):
    """
    RFC 7807 Problem Details response schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: Request path that produced the problem
        code: Machine-readable error code for client handling
        timestamp: ISO 8601 timestamp of when the error occurred
        trace_id: Identifier to find the matching log lines
        errors: Field-level validation errors (for 422)
        retryable: True when the same request may succeed if repeated
        extra: Error-specific context, such as available stock
    """

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    code: str
    timestamp: str
    trace_id: str
    errors: Optional[List[Dict[str, Any]]] = None
    retryable: Optional[bool] = None
    extra: Optional[Dict[str, Any]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "https://stockroom.local/problems/insufficient-stock",
                "title": "Bad Request",
                "status": 400,
                "detail": "Insufficient stock for A4 paper. Available: 3 ream, Requested: 5 ream",
                "instance": "/api/v1/transactions",
                "code": "INSUFFICIENT_STOCK",
                "timestamp": "2026-01-29T10:30:00Z",
                "trace_id": "abc123def456",
                "extra": {"available": 3, "unit": "ream", "requested": 5},
            }
        }
    }


def problem_type(code: str) -> str:
    return f"{PROBLEM_TYPE_BASE}/{code.lower().replace('_', '-')}"


def error_extra(exc: InventoryError) -> Optional[Dict[str, Any]]:
    """Structured context a client can act on without parsing the message."""
    if hasattr(exc, "available"):
        return {"available": exc.available, "unit": exc.unit, "requested": exc.requested}
    return None


def create_problem_response(
    status_code: int,
    code: str,
    detail: str,
    request: Request,
    errors: Optional[List[Dict[str, Any]]] = None,
    trace_id: Optional[str] = None,
    retryable: Optional[bool] = None,
    extra: Optional[Dict[str, Any]] = None,
    allowed_origins: Optional[List[str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create a RFC 7807 compliant JSON response with CORS headers."""
    problem = ProblemDetail(
        type=problem_type(code),
        title=TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code,
        timestamp=_timestamp(),
        trace_id=trace_id or _new_trace_id(),
        errors=errors,
        retryable=retryable,
        extra=extra,
    )

    response = JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )

    # Error responses bypass CORSMiddleware for unhandled exceptions
    if allowed_origins:
        origin = request.headers.get("origin", "")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"

    return response


def create_exception_handlers(allowed_origins: List[str]):
    """
    Create exception handlers with configured allowed origins for CORS.

    Usage in main.py:
        handlers = create_exception_handlers(allowed_origins)
        app.add_exception_handler(InventoryError, handlers["inventory"])
        app.add_exception_handler(StarletteHTTPException, handlers["http"])
        app.add_exception_handler(RequestValidationError, handlers["validation"])
        app.add_exception_handler(Exception, handlers["generic"])
    """

    async def handle_inventory_exception(request: Request, exc: InventoryError) -> JSONResponse:
        """Domain errors carry their own code and status."""
        trace_id = _new_trace_id()
        logger.warning(
            f"{exc.code}: {exc.message}",
            extra={"trace_id": trace_id, "status_code": exc.status_code, "path": request.url.path},
        )
        headers = {"Retry-After": "1"} if exc.retryable else None
        return create_problem_response(
            status_code=exc.status_code,
            code=exc.code,
            detail=exc.message,
            request=request,
            trace_id=trace_id,
            retryable=exc.retryable or None,
            extra=error_extra(exc),
            allowed_origins=allowed_origins,
            headers=headers,
        )

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle standard HTTPException with RFC 7807 response."""
        code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        return create_problem_response(
            status_code=exc.status_code,
            code=code.value,
            detail=str(exc.detail),
            request=request,
            allowed_origins=allowed_origins,
            headers=getattr(exc, "headers", None),
        )

    async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle Pydantic validation errors with field-level details."""
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            })

        return create_problem_response(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR.value,
            detail="Request validation failed",
            request=request,
            errors=errors,
            allowed_origins=allowed_origins,
        )

    async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions with RFC 7807 response."""
        trace_id = _new_trace_id()
        logger.error(
            f"Unhandled exception: {exc}",
            extra={"trace_id": trace_id, "path": request.url.path},
            exc_info=exc,
        )

        # Don't expose internal details in production
        from stockroom.config import settings
        detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

        return create_problem_response(
            status_code=500,
            code=ErrorCode.INTERNAL_ERROR.value,
            detail=detail,
            request=request,
            trace_id=trace_id,
            allowed_origins=allowed_origins,
        )

    return {
        "inventory": handle_inventory_exception,
        "http": handle_http_exception,
        "validation": handle_validation_exception,
        "generic": handle_generic_exception,
    }
