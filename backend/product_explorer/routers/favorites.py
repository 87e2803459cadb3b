"""Thin API layer: the signed-in user's favorite products."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from product_explorer.core.security import AuthUser, get_current_user
from product_explorer.db.session import get_db
from product_explorer.repositories import (
    get_product,
    get_products_by_ids,
    list_favorite_product_ids,
    toggle_favorite,
)

router = APIRouter(prefix="/favorites", tags=["favorites"])


class ToggleFavoriteRequest(BaseModel):
    productId: str = Field(..., min_length=1)


@router.get("")
def favorite_ids(user: AuthUser = Depends(get_current_user)):
    with get_db() as db:
        return {"favoriteProductIds": list_favorite_product_ids(db, user.user_id)}


@router.get("/products")
def favorite_products(user: AuthUser = Depends(get_current_user)):
    with get_db() as db:
        ids = list_favorite_product_ids(db, user.user_id)
        return {"products": get_products_by_ids(db, ids)}


@router.post("")
def toggle(body: ToggleFavoriteRequest, user: AuthUser = Depends(get_current_user)):
    """Add the product if not favorited, remove it otherwise."""
    with get_db() as db:
        if get_product(db, body.productId) is None:
            raise HTTPException(status_code=404, detail="Product not found")
        favorited = toggle_favorite(db, user.user_id, body.productId)
    message = "Product added to favorites" if favorited else "Product removed from favorites"
    return {"message": message, "isFavorited": favorited}
