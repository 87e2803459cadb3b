"""Product repository: filtered/sorted/paginated catalog reads."""
from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from product_explorer.models import Product
from product_explorer.repositories.queries import LIKE_ESCAPE, contains_pattern
from product_explorer.services.filters import FilterRecord

# Public sort key -> column
SORT_COLUMNS = {
    "price": Product.price,
    "rating": Product.rating,
    "ram_gb": Product.ram_gb,
    "storage_gb": Product.storage_gb,
    "name": Product.name,
}

PRODUCT_FIELDS = (
    "id",
    "name",
    "category",
    "brand",
    "price",
    "rating",
    "cpu",
    "ram_gb",
    "storage_gb",
    "screen_inch",
    "weight_kg",
    "battery_wh",
    "image_url",
)


def product_to_dict(product: Product) -> dict[str, Any]:
    return {field: getattr(product, field) for field in PRODUCT_FIELDS}


def _apply_filters(stmt: Select, filters: FilterRecord) -> Select:
    if filters.category is not None:
        stmt = stmt.where(Product.category == filters.category)
    if filters.brands:
        stmt = stmt.where(Product.brand.in_(filters.brands))
    if filters.min_price is not None:
        stmt = stmt.where(Product.price >= filters.min_price)
    if filters.max_price is not None:
        stmt = stmt.where(Product.price <= filters.max_price)
    if filters.min_ram is not None:
        stmt = stmt.where(Product.ram_gb >= filters.min_ram)
    if filters.min_storage is not None:
        stmt = stmt.where(Product.storage_gb >= filters.min_storage)
    if filters.search:
        pattern = contains_pattern(filters.search)
        stmt = stmt.where(
            or_(
                func.lower(Product.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Product.brand).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Product.category).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Product.cpu).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    return stmt


def find_products(
    db: Session,
    filters: FilterRecord,
) -> tuple[list[dict[str, Any]], int]:
    """
    Catalog read honoring every present bound in filters.
    Returns (page of products, total matching count).
    Default order is name ascending; id breaks ties so pages never overlap.
    """
    total = db.execute(_apply_filters(select(func.count()).select_from(Product), filters)).scalar_one()

    column = SORT_COLUMNS[filters.sort_by] if filters.sort_by else Product.name
    direction = filters.sort_direction or "asc"
    order = column.desc() if direction == "desc" else column.asc()

    stmt = (
        _apply_filters(select(Product), filters)
        .order_by(order, Product.id.asc())
        .offset(filters.offset)
        .limit(filters.limit)
    )
    items = [product_to_dict(p) for p in db.execute(stmt).scalars().all()]
    return items, int(total)


def get_product(db: Session, product_id: str) -> dict[str, Any] | None:
    product = db.get(Product, product_id)
    if product is None:
        return None
    return product_to_dict(product)


def get_products_by_ids(db: Session, product_ids: Sequence[str]) -> list[dict[str, Any]]:
    """Batch fetch; unknown ids are simply absent from the result. Ordered by name."""
    if not product_ids:
        return []
    rows = db.execute(
        select(Product).where(Product.id.in_(list(product_ids))).order_by(Product.name.asc(), Product.id.asc())
    ).scalars().all()
    return [product_to_dict(p) for p in rows]
