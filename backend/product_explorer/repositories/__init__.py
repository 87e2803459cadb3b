from product_explorer.repositories.ai_log_repo import clear_ai_logs, create_ai_log, list_recent_ai_logs
from product_explorer.repositories.favorite_repo import (
    is_favorited,
    list_favorite_product_ids,
    toggle_favorite,
)
from product_explorer.repositories.product_repo import (
    find_products,
    get_product,
    get_products_by_ids,
    product_to_dict,
)
from product_explorer.repositories.suggestion_repo import (
    suggest_brands,
    suggest_categories,
    suggest_products,
)
from product_explorer.repositories.user_repo import create_user, get_user_by_email, get_user_profile

__all__ = [
    "clear_ai_logs",
    "create_ai_log",
    "create_user",
    "find_products",
    "get_product",
    "get_products_by_ids",
    "get_user_by_email",
    "get_user_profile",
    "is_favorited",
    "list_favorite_product_ids",
    "list_recent_ai_logs",
    "product_to_dict",
    "suggest_brands",
    "suggest_categories",
    "suggest_products",
    "toggle_favorite",
]
