"""Thin API layer: natural-language query parsing and AI product comparison."""
from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from product_explorer.core.security import AuthUser, get_optional_user
from product_explorer.db.session import get_db
from product_explorer.repositories import get_products_by_ids
from product_explorer.services.comparison import (
    NOT_ENOUGH_COMPARABLE_MESSAGE,
    ComparisonNarrator,
    UserPreferenceHint,
    get_comparison_narrator,
    group_products,
)
from product_explorer.services.query_intent import QueryIntentResolver, get_query_resolver

router = APIRouter(prefix="/ai", tags=["ai"])


class ParseQueryRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)


class UserPreferences(BaseModel):
    budget: Optional[Literal["low", "medium", "high"]] = None
    screenSize: Optional[Literal["compact", "standard", "large"]] = None
    usage: Optional[Literal["basic", "work", "gaming", "creative"]] = None
    mobility: Optional[Literal["desktop", "portable", "ultraportable"]] = None


class CompareRequest(BaseModel):
    productIds: list[str] = Field(..., min_length=2, max_length=4)
    userPreferences: Optional[UserPreferences] = None


def caller_identity(request: Request, user: Optional[AuthUser]) -> str:
    if user is not None:
        return f"user:{user.user_id}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


@router.post("/parse-query")
def parse_query(
    body: ParseQueryRequest,
    request: Request,
    user: Optional[AuthUser] = Depends(get_optional_user),
    resolver: QueryIntentResolver = Depends(get_query_resolver),
):
    """Free text -> structural filters + leftover search term. Always 200."""
    parsed = resolver.resolve(body.query, identity=caller_identity(request, user))
    return parsed.to_response()


def load_in_request_order(product_ids: list[str]) -> list[dict]:
    """Products for the given ids, in request order; 404 if any id is unknown."""
    ids = list(dict.fromkeys(product_ids))
    with get_db() as db:
        found = {p["id"]: p for p in get_products_by_ids(db, ids)}
    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise HTTPException(status_code=404, detail=f"Product not found: {', '.join(missing)}")
    return [found[pid] for pid in ids]


@router.post("/compare")
def compare(
    body: CompareRequest,
    narrator: ComparisonNarrator = Depends(get_comparison_narrator),
):
    """
    Compare 2-4 products. Unrelated categories are set aside; the narrative is
    model text when available, otherwise a templated summary.
    """
    products = load_in_request_order(body.productIds)
    group = group_products(products)
    excluded_ids = [p["id"] for p in group.excluded]

    if not group.is_comparable:
        return {
            "products": products,
            "comparison": NOT_ENOUGH_COMPARABLE_MESSAGE,
            "comparable": [],
            "excluded": excluded_ids,
        }

    prefs = body.userPreferences.model_dump(exclude_none=True) if body.userPreferences else None
    narrative = narrator.narrate(group, UserPreferenceHint.from_dict(prefs))
    return {
        "products": products,
        "comparison": narrative.text,
        "comparable": [p["id"] for p in group.comparable],
        "excluded": excluded_ids,
        "modelUsed": narrative.model_used,
        "isFallback": narrative.is_fallback,
    }
