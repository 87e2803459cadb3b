"""
Filter normalization: raw query-string mapping -> canonical FilterRecord.

Absent means unconstrained. A constraint is cleared by leaving its key out,
never by an empty string or null placeholder.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from product_explorer.core.errors import ValidationError
from product_explorer.models.product import CATEGORIES

SORT_KEYS = ("price", "rating", "ram_gb", "storage_gb", "name")
SORT_DIRECTIONS = ("asc", "desc")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

# Structural fields (camelCase, as on the wire) vs. the free-text search term
STRUCTURAL_FIELDS = (
    "category",
    "brands",
    "minPrice",
    "maxPrice",
    "minRam",
    "minStorage",
    "sortBy",
    "sortDirection",
)


@dataclass
class FilterRecord:
    category: Optional[str] = None
    brands: Optional[list[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_ram: Optional[float] = None
    min_storage: Optional[float] = None
    sort_by: Optional[str] = None
    sort_direction: Optional[str] = None
    search: Optional[str] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_params(self) -> dict[str, Any]:
        """Wire form (camelCase keys); absent fields are omitted, not nulled."""
        params: dict[str, Any] = {}
        if self.category is not None:
            params["category"] = self.category
        if self.brands:
            params["brands"] = list(self.brands)
        if self.min_price is not None:
            params["minPrice"] = self.min_price
        if self.max_price is not None:
            params["maxPrice"] = self.max_price
        if self.min_ram is not None:
            params["minRam"] = self.min_ram
        if self.min_storage is not None:
            params["minStorage"] = self.min_storage
        if self.sort_by is not None:
            params["sortBy"] = self.sort_by
        if self.sort_direction is not None:
            params["sortDirection"] = self.sort_direction
        if self.search is not None:
            params["search"] = self.search
        params["page"] = self.page
        params["limit"] = self.limit
        return params


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _coerce_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(name, "must be a number")
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(name, "must be a number") from None
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(name, "must be a finite number")
    if number < 0:
        raise ValidationError(name, "must not be negative")
    return number


def _coerce_int(name: str, value: Any, minimum: int, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ValidationError(name, "must be an integer")
    try:
        number = int(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(name, "must be an integer") from None
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(name, "must be an integer")
    if number < minimum:
        raise ValidationError(name, f"must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(name, f"must be at most {maximum}")
    return number


def parse_brands(value: Any) -> Optional[list[str]]:
    """Comma-joined string (or list) -> ordered, de-duplicated brand list; empty -> None."""
    if value is None:
        return None
    parts: Iterable[Any]
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        # Repeated query params (?brands=A&brands=B,C) arrive as a list
        parts = [piece for item in value for piece in str(item).split(",")]
    else:
        raise ValidationError("brands", "must be a comma-separated string or a list")
    brands: list[str] = []
    for part in parts:
        brand = str(part).strip()
        if brand and brand not in brands:
            brands.append(brand)
    return brands or None


def _normalize_choice(name: str, value: Any, choices: tuple[str, ...]) -> str:
    choice = str(value).strip()
    if choice not in choices:
        raise ValidationError(name, f"must be one of {', '.join(choices)}")
    return choice


def normalize_filters(raw: Mapping[str, Any]) -> FilterRecord:
    """
    Build a FilterRecord from raw (usually string) query parameters.
    Raises ValidationError naming the offending field.
    Category is passed through unvalidated; an unknown one just matches nothing.
    """
    record = FilterRecord()

    category = raw.get("category")
    if not _is_blank(category):
        record.category = str(category).strip()

    record.brands = parse_brands(raw.get("brands"))

    for key, attr in (
        ("minPrice", "min_price"),
        ("maxPrice", "max_price"),
        ("minRam", "min_ram"),
        ("minStorage", "min_storage"),
    ):
        value = raw.get(key)
        if not _is_blank(value):
            setattr(record, attr, _coerce_number(key, value))

    if (
        record.min_price is not None
        and record.max_price is not None
        and record.min_price > record.max_price
    ):
        raise ValidationError("maxPrice", "must be greater than or equal to minPrice")

    sort_by = raw.get("sortBy")
    if not _is_blank(sort_by):
        record.sort_by = _normalize_choice("sortBy", sort_by, SORT_KEYS)
        direction = raw.get("sortDirection")
        if not _is_blank(direction):
            record.sort_direction = _normalize_choice("sortDirection", str(direction).lower(), SORT_DIRECTIONS)
        else:
            record.sort_direction = "asc"

    search = raw.get("search")
    if not _is_blank(search):
        record.search = str(search).strip()

    page = raw.get("page")
    if not _is_blank(page):
        record.page = _coerce_int("page", page, minimum=1)

    limit = raw.get("limit")
    if not _is_blank(limit):
        record.limit = _coerce_int("limit", limit, minimum=1, maximum=MAX_LIMIT)

    return record


def clean_structural_filters(candidate: Mapping[str, Any]) -> dict[str, Any]:
    """
    Keep only recognized structural fields with usable values, never raising.

    Used on model output: unknown keys, null/empty values and values that fail
    coercion (negative price, unknown sort key, non-product category) are dropped
    individually instead of rejecting the whole record.
    """
    cleaned: dict[str, Any] = {}
    for key in STRUCTURAL_FIELDS:
        if key not in candidate:
            continue
        value = candidate[key]
        if _is_blank(value):
            continue
        try:
            if key == "category":
                category = str(value).strip().lower()
                if category in CATEGORIES:
                    cleaned[key] = category
            elif key == "brands":
                brands = parse_brands(value)
                if brands:
                    cleaned[key] = brands
            elif key in ("minPrice", "maxPrice", "minRam", "minStorage"):
                number = _coerce_number(key, value)
                cleaned[key] = int(number) if number.is_integer() else number
            elif key == "sortBy":
                cleaned[key] = _normalize_choice(key, value, SORT_KEYS)
            elif key == "sortDirection":
                cleaned[key] = _normalize_choice(key, str(value).lower(), SORT_DIRECTIONS)
        except ValidationError:
            continue

    if "sortDirection" in cleaned and "sortBy" not in cleaned:
        del cleaned["sortDirection"]
    if (
        "minPrice" in cleaned
        and "maxPrice" in cleaned
        and cleaned["minPrice"] > cleaned["maxPrice"]
    ):
        del cleaned["minPrice"]
        del cleaned["maxPrice"]
    return cleaned
