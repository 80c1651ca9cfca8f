"""
Middleware Package - Security headers, request size gate and audit logging
"""
from .security import (
    SecurityHeadersMiddleware,
    RequestSizeMiddleware,
    AuditLoggingMiddleware
)

__all__ = [
    "SecurityHeadersMiddleware",
    "RequestSizeMiddleware",
    "AuditLoggingMiddleware",
]
