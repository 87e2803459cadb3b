"""User repository: lookups for login and /auth/me."""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from product_explorer.models import User


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def get_user_profile(db: Session, user_id: str) -> dict[str, Any] | None:
    user = db.get(User, user_id)
    if user is None:
        return None
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def create_user(db: Session, email: str, password_hash: str, name: str | None = None) -> User:
    user = User(email=email, password_hash=password_hash, name=name)
    db.add(user)
    db.flush()
    return user
