"""
Standardized Error Responses - Consistent error handling across the API
"""
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """
    Base API error with standardized format.

    Every error is rendered by `api_error_handler` as:
    {
        "success": false,
        "message": "Human-readable message",
        ...context   # Optional extra keys, e.g. {"field": "email"}
    }
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.context = context or {}

        super().__init__(status_code=status_code, detail=message)

    def to_body(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.context}


# ============================================================================
# Validation Errors (400)
# ============================================================================

class ValidationError(APIError):
    """Missing or malformed input"""

    def __init__(self, message: str, **context):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="VALIDATION_ERROR",
            message=message,
            context=context
        )


class DuplicateFieldError(APIError):
    """A unique user field is already taken"""

    def __init__(self, field: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="DUPLICATE_FIELD",
            message=f"{field} already in use",
            context={"field": field}
        )


class InvalidCredentialsError(APIError):
    """Login failed; kept at 400 for client compatibility"""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_CREDENTIALS",
            message=message
        )


# ============================================================================
# Authentication & Authorization Errors (401, 403)
# ============================================================================

class UnauthenticatedError(APIError):
    """Missing, invalid or expired bearer token"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="UNAUTHENTICATED",
            message=message
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(APIError):
    """Authenticated, but not the owner of the resource"""

    def __init__(self, message: str = "You don't have permission to modify this resource"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code="FORBIDDEN",
            message=message
        )


# ============================================================================
# Resource Errors (404, 413)
# ============================================================================

class NotFoundError(APIError):
    """Resource not found"""

    def __init__(self, resource: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message=f"{resource} not found"
        )


class UploadTooLargeError(APIError):
    """Uploaded file exceeds the configured limit"""

    def __init__(self, max_size: str):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            code="UPLOAD_TOO_LARGE",
            message="File too large",
            context={"maxSize": max_size}
        )


# ============================================================================
# Server Errors (500)
# ============================================================================

class InternalServerError(APIError):
    """Unexpected store or service failure"""

    def __init__(self, message: str = "Server Error", **context):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="INTERNAL_SERVER_ERROR",
            message=message,
            context=context
        )


# ============================================================================
# Helper Functions
# ============================================================================

def handle_unexpected_error(error: Exception, context: str, debug: bool = False, **extra):
    """
    Log an unexpected error and raise a sanitized InternalServerError.

    Args:
        error: The caught exception
        context: Description of where the error occurred
        debug: Include the error text in the response (development only)
        **extra: Additional keys for the response body, e.g. data=[]

    Raises:
        InternalServerError
    """
    logger.error(f"Unexpected error in {context}: {str(error)}", exc_info=True)
    if debug:
        extra["error"] = str(error)
    raise InternalServerError(**extra) from error


# ============================================================================
# Exception Handlers
# ============================================================================

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
        headers=getattr(exc, "headers", None)
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", [])[1:]), "error": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Invalid request", "errors": errors}
    )


def make_unhandled_error_handler(debug: bool):
    """Build the catch-all handler; error details are exposed only in debug mode."""

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        body = {"success": False, "message": "Internal server error"}
        if debug:
            body["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)

    return unhandled_error_handler
