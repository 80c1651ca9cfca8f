"""
Dependencies module for FastAPI application
Provides authentication, password/token helpers and shared repositories
"""
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from config import settings
import jwt
import bcrypt
import logging
import time
from datetime import datetime, timezone, timedelta
from typing import Optional

from utils.debug import Loggers, log_auth_event
from utils.errors import UnauthenticatedError, handle_unexpected_error
from database.repositories.user_repository import user_repository

logger = logging.getLogger(__name__)

# Security; auto_error disabled so a missing header yields our 401 body
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False


def create_token(user_id: str, lifetime: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + (lifetime or timedelta(hours=settings.token_lifetime_hours))
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> str:
    """
    Verify a token and return the user id it carries.

    Raises:
        UnauthenticatedError: token expired, malformed or missing its subject
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.warning("Auth failed: Token expired")
        raise UnauthenticatedError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Auth failed: Invalid token - {type(e).__name__}: {e}")
        raise UnauthenticatedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthenticatedError("Invalid token")
    return user_id


async def _resolve_user(request: Request, credentials: Optional[HTTPAuthorizationCredentials],
                        **error_extra) -> dict:
    start_time = time.time()
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("No token provided")

    user_id = decode_token(credentials.credentials)
    try:
        user = await user_repository.find_by_id(user_id)
    except Exception as e:
        handle_unexpected_error(e, "get_current_user", debug=settings.debug_mode, **error_extra)

    if not user:
        logger.warning(f"Auth failed: User not found for token user_id={user_id}")
        log_auth_event("TOKEN_REJECTED", user_id=user_id, success=False, reason="user_not_found")
        raise UnauthenticatedError("User not found")

    request.state.user_id = user["id"]
    duration_ms = (time.time() - start_time) * 1000
    Loggers.auth.debug("Token validated", user_id=user["id"], duration_ms=f"{duration_ms:.2f}")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """
    Authorization guard for protected routes.

    Resolves the bearer token to a user record and stores the id on
    request.state.user_id for downstream handlers and logging.
    """
    return await _resolve_user(request, credentials)


async def get_current_user_for_list(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """Same guard for list routes: a failed user lookup still answers with data=[]"""
    return await _resolve_user(request, credentials, data=[])


def get_media_store(request: Request):
    """Media store created at startup (see server.lifespan)"""
    return request.app.state.media_store
