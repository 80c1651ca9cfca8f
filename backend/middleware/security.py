"""
Security Middleware - Security headers, request size gate and audit logging
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response
import jwt
import logging
import time
from typing import Callable

from config import settings
from utils.debug import Loggers, log_request, log_response

logger = logging.getLogger(__name__)

HEALTH_PATHS = ["/health"]


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - Strict-Transport-Security outside localhost
    - Referrer-Policy: strict-origin-when-cross-origin
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"

        if request.url.hostname not in ["localhost", "127.0.0.1", "testserver"]:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        return response


class RequestSizeMiddleware(BaseHTTPMiddleware):
    """
    Reject requests whose declared body is larger than an image upload can be.

    The limit is the upload limit plus room for the other multipart fields;
    the media store still enforces the exact per-file limit.
    """

    FORM_OVERHEAD = 1024 * 1024

    def __init__(self, app, max_upload_bytes: int = None, max_label: str = None):
        super().__init__(app)
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_bytes
        self.max_label = max_label or settings.max_upload_label
        self.max_content_length = self.max_upload_bytes + self.FORM_OVERHEAD

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else "unknown"

        content_length = request.headers.get("content-length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                return JSONResponse(status_code=400, content={"success": False, "message": "Invalid request"})

            if declared > self.max_content_length:
                Loggers.security.warning(
                    "Request rejected: content too large",
                    ip=client_ip,
                    content_length=declared,
                    max_length=self.max_content_length
                )
                return JSONResponse(
                    status_code=413,
                    content={"success": False, "message": "File too large", "maxSize": self.max_label}
                )

        # Null bytes in the path
        if "\x00" in request.url.path:
            Loggers.security.warning("Request rejected: null byte in URL", ip=client_ip)
            return JSONResponse(status_code=400, content={"success": False, "message": "Invalid request"})

        return await call_next(request)


class AuditLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with the caller's user id, status and response time.
    """

    def _extract_user_id(self, request: Request) -> str:
        """User id from the bearer token, for logging only; the guard does the real check"""
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return "anonymous"
        try:
            payload = jwt.decode(
                auth_header[7:],
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                options={"verify_exp": False}  # Expired tokens are still attributed
            )
            return str(payload.get("sub") or "unknown")
        except jwt.InvalidTokenError:
            return "invalid_token"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path
        query_params = dict(request.query_params) if request.query_params else None
        user_id = self._extract_user_id(request)

        if path not in HEALTH_PATHS:
            log_request(method, path, query_params=query_params)

        response = await call_next(request)

        response_time = (time.time() - start_time) * 1000

        if path not in HEALTH_PATHS:
            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            short_user_id = user_id[:8] if user_id not in ["anonymous", "unknown", "invalid_token"] else user_id

            logger.log(
                log_level,
                f"{method} {path} - {response.status_code} - {response_time:.2f}ms - user:{short_user_id} - ip:{client_ip}"
            )
            log_response(method, path, response.status_code, response_time)

        response.headers["X-Response-Time"] = f"{response_time:.2f}ms"

        return response
