"""SQLAlchemy models only; no business logic."""
from product_explorer.models.ai_log import AiLog
from product_explorer.models.base import TimestampMixin, UUIDPrimaryKeyMixin
from product_explorer.models.favorite import Favorite
from product_explorer.models.product import CATEGORIES, Product
from product_explorer.models.user import User

__all__ = [
    "AiLog",
    "CATEGORIES",
    "Favorite",
    "Product",
    "TimestampMixin",
    "User",
    "UUIDPrimaryKeyMixin",
]
