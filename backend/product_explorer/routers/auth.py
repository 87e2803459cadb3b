"""Thin API layer: cookie-session login, logout and current user."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from product_explorer.core.config import get_settings
from product_explorer.core.security import AuthUser, get_current_user, sign_token, verify_password
from product_explorer.db.session import get_db
from product_explorer.repositories import get_user_by_email, get_user_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)


@router.post("/login")
def login(body: LoginRequest, response: Response):
    settings = get_settings()
    with get_db() as db:
        user = get_user_by_email(db, body.email.strip().lower())
        if user is None or not verify_password(body.password, user.password_hash):
            logger.warning("Failed login for %s", body.email)
            raise HTTPException(status_code=401, detail="Invalid credentials")
        user_id, email, name = user.id, user.email, user.name

    token = sign_token(user_id, email)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.jwt_expire_days * 24 * 60 * 60,
        path="/",
    )
    return {"user": {"id": user_id, "email": email, "name": name}}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(get_settings().auth_cookie_name, path="/")
    return {"message": "Logged out successfully"}


@router.get("/me")
def me(user: AuthUser = Depends(get_current_user)):
    with get_db() as db:
        profile = get_user_profile(db, user.user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"user": profile}
