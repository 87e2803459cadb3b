"""
Password hashing and JWT session tokens.
The token lives in an http-only cookie; a Bearer header is accepted too (scripts, tests).
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from fastapi import HTTPException, Request

from product_explorer.core.config import get_settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

_fallback_secret: Optional[str] = None


@dataclass(frozen=True)
class AuthUser:
    user_id: str
    email: str


def _jwt_secret() -> str:
    global _fallback_secret
    secret = get_settings().jwt_secret
    if secret:
        return secret
    if _fallback_secret is None:
        _fallback_secret = secrets.token_hex(32)
        logger.warning(
            "JWT_SECRET not set; generated a random secret (sessions reset on restart). "
            "Set JWT_SECRET for production."
        )
    return _fallback_secret


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Not a bcrypt hash
        return False


def sign_token(user_id: str, email: str, expires_in: Optional[timedelta] = None) -> str:
    if expires_in is None:
        expires_in = timedelta(days=get_settings().jwt_expire_days)
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[AuthUser]:
    """Decode a session token; None for anything invalid, malformed or expired."""
    if not token:
        return None
    try:
        payload: dict[str, Any] = jwt.decode(token, _jwt_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    user_id = payload.get("userId")
    email = payload.get("email")
    if not user_id or not email:
        return None
    return AuthUser(user_id=str(user_id), email=str(email))


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(get_settings().auth_cookie_name)
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return None


def get_optional_user(request: Request) -> Optional[AuthUser]:
    """FastAPI dependency: the signed-in user, or None for anonymous requests."""
    token = _token_from_request(request)
    return verify_token(token) if token else None


def get_current_user(request: Request) -> AuthUser:
    """FastAPI dependency: the signed-in user; 401 otherwise."""
    user = get_optional_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
