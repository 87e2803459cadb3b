"""Favorite repository: per-user favorite set; toggle in one transaction."""
from __future__ import annotations

import logging

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from product_explorer.models import Favorite
from product_explorer.repositories.queries import SQL_DELETE_FAVORITE, SQL_FAVORITE_PRODUCT_IDS

logger = logging.getLogger(__name__)


def list_favorite_product_ids(db: Session, user_id: str) -> list[str]:
    rows = db.execute(text(SQL_FAVORITE_PRODUCT_IDS), {"user_id": user_id}).fetchall()
    return [str(r[0]) for r in rows]


def is_favorited(db: Session, user_id: str, product_id: str) -> bool:
    row = db.execute(
        select(Favorite.id).where(Favorite.user_id == user_id, Favorite.product_id == product_id)
    ).first()
    return row is not None


def toggle_favorite(db: Session, user_id: str, product_id: str) -> bool:
    """
    Flip the favorite state for (user, product) and return the new state.
    The unique (user_id, product_id) constraint backs the at-most-one invariant.
    Caller commits (get_db() does).
    """
    if is_favorited(db, user_id, product_id):
        db.execute(text(SQL_DELETE_FAVORITE), {"user_id": user_id, "product_id": product_id})
        return False
    db.add(Favorite(user_id=user_id, product_id=product_id))
    try:
        db.flush()
    except IntegrityError:
        # A concurrent toggle inserted the same pair first
        db.rollback()
        logger.info("Favorite (%s, %s) already present; keeping it", user_id, product_id)
    return True
