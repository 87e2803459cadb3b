"""Thin API layer: deterministic attribute scoring for the comparison view."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from product_explorer.routers.ai import load_in_request_order
from product_explorer.services.scoring import score_products

router = APIRouter(prefix="/compare", tags=["compare"])


class ScoreRequest(BaseModel):
    productIds: list[str] = Field(..., min_length=2, max_length=4)
    attributes: Optional[list[str]] = None


@router.post("/scores")
def scores(body: ScoreRequest):
    products = load_in_request_order(body.productIds)
    result = score_products(products, body.attributes)
    return {"products": products, **result.to_dict()}
