"""Thin API layer: search-box suggestions."""
from __future__ import annotations

from fastapi import APIRouter, Query

from product_explorer.db.session import get_db
from product_explorer.services.suggestions import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MIN_LIMIT,
    build_suggestions,
    popular_suggestions,
)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/suggestions")
def suggestions(
    q: str = Query(""),
    limit: int = Query(DEFAULT_LIMIT, ge=MIN_LIMIT, le=MAX_LIMIT),
):
    """
    Ranked suggestions for the search box.
    Empty q returns popular searches instead.
    """
    if not q.strip():
        return popular_suggestions()
    with get_db() as db:
        return build_suggestions(db, q, limit=limit)
