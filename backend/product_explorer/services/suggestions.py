"""Search-box suggestions: catalog matches, popular searches and query refinements."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from product_explorer.repositories import suggest_brands, suggest_categories, suggest_products

POPULAR_SUGGESTIONS = (
    "Apple iPhone 15 Pro",
    "Samsung Galaxy S24",
    "MacBook Pro M3",
    "iPad Air",
    "Google Pixel 8",
    "Dell XPS 13",
    "iPhone under $800",
    "laptops with 16GB RAM",
    "gaming laptops",
    "tablets for drawing",
    "phones with best camera",
    "ultrabook under $1000",
    "Apple vs Samsung phones",
    "budget Android phones",
    "laptops for programming",
)

COMPARISON_BRANDS = ("apple", "samsung", "google", "dell", "hp", "lenovo")

MIN_LIMIT = 1
MAX_LIMIT = 10
DEFAULT_LIMIT = 5


def popular_suggestions(count: int = 5) -> dict[str, Any]:
    return {"suggestions": list(POPULAR_SUGGESTIONS[:count]), "type": "popular"}


def generate_smart_suggestions(query: str) -> list[str]:
    """Up to three refinements of the query (price bands, features, a brand matchup)."""
    lowered = query.lower()
    out: list[str] = []

    if "cheap" in lowered or "budget" in lowered:
        out += [f"{query} under $500", f"{query} under $800"]
    if "expensive" in lowered or "premium" in lowered:
        out += [f"{query} over $1000", f"{query} over $1500"]

    if "laptop" in lowered:
        out += [f"{query} with 16GB RAM", f"{query} for gaming", f"{query} for work"]
    if "phone" in lowered:
        out += [f"{query} with best camera", f"{query} with long battery", f"{query} with 5G"]
    if "tablet" in lowered:
        out += [f"{query} for drawing", f"{query} with keyboard", f"{query} for students"]

    mentioned = next((b for b in COMPARISON_BRANDS if b in lowered), None)
    if mentioned:
        other = next(b for b in COMPARISON_BRANDS if b != mentioned)
        out.append(f"{mentioned} vs {other}")

    return out[:3]


def build_suggestions(db: Session, query: str, limit: int = DEFAULT_LIMIT) -> dict[str, Any]:
    """
    Ranked suggestions for a non-empty query: product names first, then brands,
    categories, matching popular searches and generated refinements, capped at limit.
    """
    q = query.strip().lower()
    suggestions: list[dict[str, Any]] = []

    for p in suggest_products(db, q, limit=limit):
        suggestions.append(
            {"text": p["name"], "type": "product", "data": {"brand": p["brand"], "category": p["category"]}}
        )

    extra: list[dict[str, Any]] = []
    extra += [{"text": f"{b} products", "type": "brand", "data": {"brand": b}} for b in suggest_brands(db, q)]
    extra += [{"text": f"{c}s", "type": "category", "data": {"category": c}} for c in suggest_categories(db, q)]
    extra += [{"text": s, "type": "popular"} for s in POPULAR_SUGGESTIONS if q in s.lower()][:3]
    extra += [{"text": s, "type": "query"} for s in generate_smart_suggestions(q)]

    for item in extra:
        if len(suggestions) >= limit:
            break
        suggestions.append(item)

    return {"suggestions": suggestions[:limit], "query": q}
