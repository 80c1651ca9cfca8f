"""
Authentication Router - Registration, login and the current user
"""
from fastapi import APIRouter, Depends, Request
from models import UserRegister, UserLogin, AuthResponse, serialize_user
from dependencies import (
    get_current_user, hash_password, verify_password, create_token, user_repository,
)
from config import settings
from database.repositories.base_repository import utc_now
from utils.activity_logger import log_user_activity
from utils.debug import Loggers, log_auth_event
from utils.errors import ValidationError, DuplicateFieldError, InvalidCredentialsError
from utils.security import validate_email, validate_username
import asyncpg
import asyncio
import uuid
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(user: UserRegister, request: Request):
    ip_address = _client_ip(request)
    Loggers.auth.info("Registration attempt", email=(user.email or "")[:3] + "***", ip=ip_address)

    missing = {
        "username": not user.username,
        "email": not user.email,
        "password": not user.password,
    }
    if any(missing.values()):
        raise ValidationError("All fields are required", fields=missing)

    if len(user.password) < settings.password_min_length:
        raise ValidationError(
            f"Password must be at least {settings.password_min_length} characters",
            field="password"
        )

    is_valid, error_msg = validate_email(user.email)
    if not is_valid:
        raise ValidationError(error_msg, field="email")

    is_valid, error_msg = validate_username(user.username)
    if not is_valid:
        raise ValidationError(error_msg, field="username")

    existing = await user_repository.find_by_email_or_username(user.email, user.username)
    if existing:
        field = "email" if existing["email"] == user.email else "username"
        log_auth_event("REGISTER_FAILED", email=user.email, ip_address=ip_address,
                       success=False, reason=f"duplicate_{field}")
        raise DuplicateFieldError(field)

    # Hash password in a thread pool
    hashed_password = await asyncio.get_running_loop().run_in_executor(
        None, hash_password, user.password
    )

    user_doc = {
        "id": str(uuid.uuid4()),
        "username": user.username,
        "email": user.email,
        "password": hashed_password,
        "created_at": utc_now(),
    }
    try:
        created = await user_repository.create(user_doc)
    except asyncpg.UniqueViolationError as e:
        # Lost a race with a concurrent registration for the same email/username
        field = "email" if "email" in (e.constraint_name or "") else "username"
        raise DuplicateFieldError(field) from e

    log_user_activity(user_id=created["id"], action="register", ip_address=ip_address)
    log_auth_event("REGISTER", user_id=created["id"], email=user.email, ip_address=ip_address)

    return AuthResponse(
        message="User Registered successfully",
        token=create_token(created["id"]),
        user=serialize_user(created)
    )


@router.post("/login", response_model=AuthResponse)
async def login(credentials: UserLogin, request: Request):
    ip_address = _client_ip(request)
    if not credentials.email or not credentials.password:
        log_auth_event("LOGIN_FAILED", email=credentials.email, ip_address=ip_address,
                       success=False, reason="missing_fields")
        raise InvalidCredentialsError()

    db_user = await user_repository.find_by_email(credentials.email, include_password=True)
    if not db_user:
        log_auth_event("LOGIN_FAILED", email=credentials.email, ip_address=ip_address,
                       success=False, reason="unknown_email")
        raise InvalidCredentialsError()

    password_ok = await asyncio.get_running_loop().run_in_executor(
        None, verify_password, credentials.password, db_user["password"]
    )
    if not password_ok:
        log_auth_event("LOGIN_FAILED", user_id=db_user["id"], email=credentials.email,
                       ip_address=ip_address, success=False, reason="bad_password")
        raise InvalidCredentialsError()

    log_user_activity(user_id=db_user["id"], action="login", ip_address=ip_address)
    log_auth_event("LOGIN", user_id=db_user["id"], email=credentials.email, ip_address=ip_address)

    return AuthResponse(
        message="Login Successful",
        token=create_token(db_user["id"]),
        user=serialize_user(db_user)
    )


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    return {"success": True, "user": serialize_user(user)}
