"""Suggestion repository: name/brand/category matches for the search box."""
from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session

from product_explorer.repositories.queries import (
    SQL_SUGGEST_BRANDS,
    SQL_SUGGEST_CATEGORIES,
    SQL_SUGGEST_PRODUCTS,
    contains_pattern,
)


def suggest_products(db: Session, query: str, limit: int = 5) -> list[dict[str, Any]]:
    rows = db.execute(text(SQL_SUGGEST_PRODUCTS), {"pattern": contains_pattern(query), "limit": limit}).fetchall()
    return [{"name": r[0], "brand": r[1], "category": r[2]} for r in rows]


def suggest_brands(db: Session, query: str, limit: int = 3) -> list[str]:
    rows = db.execute(text(SQL_SUGGEST_BRANDS), {"pattern": contains_pattern(query), "limit": limit}).fetchall()
    return [r[0] for r in rows]


def suggest_categories(db: Session, query: str, limit: int = 3) -> list[str]:
    rows = db.execute(text(SQL_SUGGEST_CATEGORIES), {"pattern": contains_pattern(query), "limit": limit}).fetchall()
    return [r[0] for r in rows]
