"""
Unified Error Handling.

Services raise AppException subclasses; the handlers registered here turn them
into a flash message plus a redirect for browser requests, or a JSON error body
for JSON clients.

Key features:
1. Custom exception hierarchy
2. Error code system
3. Flash-and-redirect responses for HTML routes
4. Error logging and tracking
"""
import os
import traceback
import logging
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass
from uuid import uuid4

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nexus.utils.flash import flash

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Application error codes."""
    # General errors (1xxx)
    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"
    UNAUTHORIZED = "E1003"
    FORBIDDEN = "E1004"
    RATE_LIMITED = "E1005"

    # User errors (2xxx)
    USER_NOT_FOUND = "E2001"
    USER_ALREADY_EXISTS = "E2002"
    INVALID_CREDENTIALS = "E2003"
    PROFILE_INCOMPLETE = "E2004"

    # Connection errors (3xxx)
    REQUEST_NOT_FOUND = "E3001"
    REQUEST_ALREADY_PENDING = "E3002"
    REQUEST_NOT_PENDING = "E3003"
    INVALID_RECIPIENT = "E3004"
    ALREADY_CONNECTED = "E3005"

    # External service errors (6xxx)
    DATABASE_ERROR = "E6001"


# Error code to HTTP status mapping
ERROR_STATUS_MAP = {
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.USER_ALREADY_EXISTS: 409,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.PROFILE_INCOMPLETE: 400,
    ErrorCode.REQUEST_NOT_FOUND: 404,
    ErrorCode.REQUEST_ALREADY_PENDING: 409,
    ErrorCode.REQUEST_NOT_PENDING: 409,
    ErrorCode.INVALID_RECIPIENT: 400,
    ErrorCode.ALREADY_CONNECTED: 409,
    ErrorCode.DATABASE_ERROR: 503,
}


@dataclass
class ErrorResponse:
    """Standardized error response."""
    error_id: str
    code: str
    message: str
    status_code: int
    timestamp: str
    path: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result = {
            "error": {
                "id": self.error_id,
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }
        if self.path:
            result["error"]["path"] = self.path
        if self.details:
            result["error"]["details"] = self.details
        return result


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        redirect_to: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        self.redirect_to = redirect_to
        self.original_error = original_error
        self.status_code = ERROR_STATUS_MAP.get(code, 500)
        super().__init__(message)


class ValidationException(AppException):
    """Invalid form input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        redirect_to: Optional[str] = None
    ):
        details = {"field": field} if field else None
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
            redirect_to=redirect_to
        )


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
        redirect_to: Optional[str] = None
    ):
        super().__init__(
            code=code,
            message=f"{resource_type} not found",
            details={"resource_type": resource_type, "resource_id": resource_id},
            redirect_to=redirect_to
        )


class AuthenticationRequired(AppException):
    """No logged-in user."""

    def __init__(self, message: str = "You must be logged in to do that."):
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message, redirect_to="/login")


class InvalidCredentials(AppException):
    """Bad username/email or password."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.INVALID_CREDENTIALS,
            message="Invalid username or password.",
            redirect_to="/login"
        )


class PermissionDenied(AppException):
    """Logged in, but the role or ownership check failed."""

    def __init__(self, message: str = "You do not have permission to do that.", redirect_to: str = "/dashboard"):
        super().__init__(code=ErrorCode.FORBIDDEN, message=message, redirect_to=redirect_to)


class ConflictException(AppException):
    """Duplicate or out-of-state operation."""
    pass


class ExternalServiceException(AppException):
    """External service exception."""

    def __init__(
        self,
        service_name: str,
        message: str,
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            code=code,
            message=f"{service_name}: {message}",
            details={"service": service_name},
            original_error=original_error
        )


class ErrorTracker:
    """Tracks errors for monitoring."""

    def __init__(self):
        self._errors: Dict[str, list] = {}
        self._error_counts: Dict[str, int] = {}
        self.max_stored_errors = int(os.getenv("MAX_STORED_ERRORS", "1000"))

    def track(
        self,
        error_id: str,
        error_code: ErrorCode,
        message: str,
        request_path: Optional[str] = None,
        stack_trace: Optional[str] = None
    ) -> None:
        """Track an error occurrence."""
        error_record = {
            "error_id": error_id,
            "code": error_code.value,
            "message": message,
            "path": request_path,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "stack_trace": stack_trace
        }

        code_key = error_code.value
        self._errors.setdefault(code_key, []).append(error_record)
        if len(self._errors[code_key]) > self.max_stored_errors:
            self._errors[code_key] = self._errors[code_key][-self.max_stored_errors:]

        self._error_counts[code_key] = self._error_counts.get(code_key, 0) + 1

    def get_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        return {
            "total_errors": sum(self._error_counts.values()),
            "by_code": dict(self._error_counts),
        }


# Global error tracker
error_tracker = ErrorTracker()


def wants_json(request: Request) -> bool:
    """JSON for API-style clients, HTML flash-and-redirect for browsers."""
    if request.url.path.startswith("/health"):
        return True
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def _same_site_referer(request: Request) -> Optional[str]:
    referer = request.headers.get("referer")
    if not referer:
        return None
    host = request.headers.get("host")
    if host and f"//{host}" not in referer:
        return None
    return referer


def redirect_with_flash(request: Request, message: str, category: str, fallback: Optional[str]) -> RedirectResponse:
    """Queue a flash message and redirect (303 so POSTs become GETs)."""
    flash(request, message, category)
    target = fallback or _same_site_referer(request) or "/"
    return RedirectResponse(url=target, status_code=303)


def create_error_response(error: AppException, request: Request) -> ErrorResponse:
    """Create a standardized error response and record it."""
    error_id = str(uuid4())

    error_tracker.track(
        error_id=error_id,
        error_code=error.code,
        message=error.message,
        request_path=str(request.url.path),
        stack_trace=traceback.format_exc() if error.original_error else None
    )

    return ErrorResponse(
        error_id=error_id,
        code=error.code.value,
        message=error.message,
        status_code=error.status_code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=str(request.url.path),
        details=error.details
    )


def setup_error_handling(app, templates=None):
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        error_response = create_error_response(exc, request)
        logger.info(f"{exc.code.value} on {request.method} {request.url.path}: {exc.message}")
        if wants_json(request):
            return JSONResponse(status_code=error_response.status_code, content=error_response.to_dict())
        return redirect_with_flash(request, exc.message, "error", exc.redirect_to)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Form validation failed on {request.url.path}: {exc.errors()}")
        if wants_json(request):
            return JSONResponse(status_code=422, content={"error": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": "Validation failed",
                "details": {"errors": [err.get("msg") for err in exc.errors()]},
            }})
        return redirect_with_flash(request, "Please fill in all required fields.", "error", None)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if wants_json(request) or templates is None:
            return JSONResponse(status_code=exc.status_code, content={"error": {
                "code": f"HTTP_{exc.status_code}",
                "message": exc.detail,
            }})
        return templates.TemplateResponse(
            request,
            "error.html",
            {"status_code": exc.status_code, "message": exc.detail},
            status_code=exc.status_code
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid4())
        logger.exception(f"Unhandled exception {error_id}")

        error_tracker.track(
            error_id=error_id,
            error_code=ErrorCode.INTERNAL_ERROR,
            message=str(exc),
            request_path=str(request.url.path),
            stack_trace=traceback.format_exc()
        )

        is_debug = os.getenv("DEBUG", "false").lower() == "true"
        message = str(exc) if is_debug else "Something went wrong. Please try again later."

        if wants_json(request) or templates is None:
            return JSONResponse(status_code=500, content={"error": {
                "id": error_id,
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": message,
            }})
        return templates.TemplateResponse(
            request,
            "error.html",
            {"status_code": 500, "message": message, "error_id": error_id},
            status_code=500
        )

    logger.info("Error handlers configured")
