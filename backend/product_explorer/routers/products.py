"""Thin API layer: catalog browse, detail and batch lookup."""
from __future__ import annotations

import math

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from product_explorer.db.session import get_db
from product_explorer.repositories import find_products, get_product, get_products_by_ids
from product_explorer.services.filters import normalize_filters

router = APIRouter(prefix="/products", tags=["products"])


class ProductLookupRequest(BaseModel):
    productIds: list[str] = Field(..., min_length=1, max_length=100)


def _raw_filters(request: Request) -> dict:
    raw: dict = dict(request.query_params)
    brands = request.query_params.getlist("brands")
    if len(brands) > 1:
        raw["brands"] = brands
    return raw


@router.get("")
def list_products(request: Request):
    """
    Filtered, sorted, paginated catalog.
    Query params: category, brands (comma-separated), minPrice, maxPrice, minRam,
    minStorage, sortBy, sortDirection, search, page, limit.
    """
    filters = normalize_filters(_raw_filters(request))
    with get_db() as db:
        items, total = find_products(db, filters)
    total_pages = math.ceil(total / filters.limit) if total else 0
    return {
        "products": items,
        "pagination": {
            "page": filters.page,
            "limit": filters.limit,
            "totalCount": total,
            "totalPages": total_pages,
            "hasNext": filters.page < total_pages,
            "hasPrev": filters.page > 1,
        },
        "filters": filters.to_params(),
    }


@router.post("/lookup")
def lookup_products(body: ProductLookupRequest):
    """Batch fetch by id; unknown ids are left out."""
    with get_db() as db:
        return {"products": get_products_by_ids(db, body.productIds)}


@router.get("/{product_id}")
def product_detail(product_id: str):
    with get_db() as db:
        product = get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
