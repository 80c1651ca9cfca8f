"""
Debug Utilities - Structured logging helpers for the TastyBite API

Provides:
- Logging setup with stdout/stderr split for container log collectors
- DebugLogger, a logger wrapper that appends key=value context
- Pre-configured module loggers (Loggers.auth, Loggers.db, ...)
- DebugContext for timing blocks of code
- Request/response, database query and auth event helpers

Environment Variables:
    DEBUG_MODE=true   - Include query params and request bodies in logs
    LOG_LEVEL=DEBUG   - Set log level (DEBUG, INFO, WARNING, ERROR)

Usage:
    from utils.debug import Loggers, DebugContext, log_db_query

    Loggers.recipes.info("Recipe created", recipe_id=recipe_id)

    async with DebugContext("cascade_delete", recipe_id=recipe_id):
        ...
"""

import json
import logging
import os
import sys
import time
from typing import Any, Dict, Optional

DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

MODULE_LOGGERS = ['auth', 'db', 'api', 'recipes', 'favorites', 'media', 'security', 'context']


def setup_debug_logging(level_name: Optional[str] = None):
    """
    Configure the root logger and tastybite.* loggers.

    INFO and below go to stdout, WARNING and above go to stderr.
    Call once, early in application startup.
    """
    level = getattr(logging, (level_name or LOG_LEVEL).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(lambda record: record.levelno < logging.WARNING)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    # Module loggers inherit handlers from root
    for name in ['tastybite', 'tastybite.activity'] + [f"tastybite.{m}" for m in MODULE_LOGGERS]:
        logging.getLogger(name).setLevel(level)

    logging.getLogger("tastybite").info(
        f"Logging configured: level={logging.getLevelName(level)}, debug_mode={DEBUG_MODE}"
    )


def _format_value(value: Any, max_length: int = 200) -> str:
    """Format a value for log output, truncating if necessary."""
    try:
        if value is None:
            return "None"
        if isinstance(value, (str, int, float, bool)):
            str_val = str(value)
        elif isinstance(value, (dict, list)):
            str_val = json.dumps(value, default=str)
        else:
            str_val = repr(value)

        if len(str_val) > max_length:
            return str_val[:max_length] + "..."
        return str_val
    except Exception:
        return "<unserializable>"


def mask_email(email: Optional[str]) -> str:
    """Mask the local part of an email address for logging."""
    if not email:
        return "***"
    if "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    return local[:2] + "***@" + domain


class DebugLogger:
    """
    Logger wrapper with key=value context output.

    Usage:
        logger = DebugLogger("auth")
        logger.info("Login successful", user_id="123")
        logger.error("Login failed", reason="invalid_password")
    """

    def __init__(self, module: str):
        self.module = module
        self.logger = logging.getLogger(f"tastybite.{module}")

    def _format_message(self, message: str, **kwargs) -> str:
        if kwargs:
            context_str = " | ".join(f"{k}={_format_value(v)}" for k, v in kwargs.items())
            return f"[{self.module}] {message} | {context_str}"
        return f"[{self.module}] {message}"

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self.logger.error(self._format_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs):
        """Log exception with full traceback."""
        self.logger.exception(self._format_message(message, **kwargs))


class Loggers:
    """Pre-configured debug loggers for different application modules."""
    auth = DebugLogger("auth")
    db = DebugLogger("db")
    api = DebugLogger("api")
    recipes = DebugLogger("recipes")
    favorites = DebugLogger("favorites")
    media = DebugLogger("media")
    security = DebugLogger("security")


class DebugContext:
    """
    Context manager for timing code blocks and logging failures.

    Usage:
        with DebugContext("parse_upload", filename=name):
            ...

        async with DebugContext("cascade_delete", logger=Loggers.db):
            await ...
    """

    SLOW_THRESHOLD_MS = 1000

    def __init__(self, name: str, logger: Optional[DebugLogger] = None, **context):
        self.name = name
        self.logger = logger or DebugLogger("context")
        self.context = context
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"BEGIN {self.name}", **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = (time.time() - self.start_time) * 1000

        if exc_type:
            self.logger.error(
                f"FAILED {self.name}: {exc_type.__name__}: {str(exc_val)}",
                duration_ms=f"{elapsed:.2f}",
                **self.context
            )
        elif elapsed > self.SLOW_THRESHOLD_MS:
            self.logger.warning(f"END {self.name}", duration_ms=f"{elapsed:.2f}", status="SLOW", **self.context)
        else:
            self.logger.debug(f"END {self.name}", duration_ms=f"{elapsed:.2f}", **self.context)

        return False

    async def __aenter__(self):
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return self.__exit__(exc_type, exc_val, exc_tb)


def log_request(method: str, path: str, user_id: Optional[str] = None,
                query_params: Optional[Dict] = None):
    """
    Log an incoming API request.

    Usage:
        log_request("POST", "/recipes", user_id="123")
    """
    context = {"method": method, "path": path}
    if user_id:
        context["user_id"] = user_id
    if query_params and DEBUG_MODE:
        context["query"] = _format_value(query_params)

    Loggers.api.debug("REQUEST", **context)


def log_response(method: str, path: str, status_code: int,
                 duration_ms: float, user_id: Optional[str] = None):
    """Log an API response; level follows the status code."""
    context = {
        "method": method,
        "path": path,
        "status": status_code,
        "duration_ms": f"{duration_ms:.2f}",
    }
    if user_id:
        context["user_id"] = user_id

    if status_code >= 500:
        Loggers.api.error("RESPONSE", **context)
    elif status_code >= 400:
        Loggers.api.warning("RESPONSE", **context)
    elif duration_ms > 1000:
        Loggers.api.warning("RESPONSE (SLOW)", **context)
    else:
        Loggers.api.debug("RESPONSE", **context)


def log_db_query(operation: str, table: str, duration_ms: float,
                 rows_affected: Optional[int] = None,
                 query_params: Optional[Dict] = None,
                 error: Optional[str] = None):
    """
    Log a database query.

    Usage:
        log_db_query("SELECT", "recipes", 5.2, rows_affected=1, query_params={"id": "123"})
    """
    context = {
        "operation": operation,
        "table": table,
        "duration_ms": f"{duration_ms:.2f}",
    }
    if rows_affected is not None:
        context["rows"] = rows_affected
    if query_params and DEBUG_MODE:
        context["params"] = _format_value(query_params)
    if error:
        context["error"] = error

    if error:
        Loggers.db.error("QUERY FAILED", **context)
    elif duration_ms > 100:
        Loggers.db.warning("QUERY (SLOW)", **context)
    else:
        Loggers.db.debug("QUERY", **context)


def log_auth_event(event: str, user_id: Optional[str] = None,
                   email: Optional[str] = None, ip_address: Optional[str] = None,
                   success: bool = True, reason: Optional[str] = None):
    """
    Log an authentication event. Emails are masked.

    Usage:
        log_auth_event("LOGIN", email="user@example.com", success=True)
        log_auth_event("LOGIN_FAILED", email="user@example.com", success=False, reason="bad_password")
    """
    context = {"event": event, "success": success}
    if user_id:
        context["user_id"] = user_id
    if email:
        context["email"] = mask_email(email)
    if ip_address:
        context["ip"] = ip_address
    if reason:
        context["reason"] = reason

    if success:
        Loggers.auth.info("AUTH_EVENT", **context)
    else:
        Loggers.auth.warning("AUTH_EVENT", **context)
