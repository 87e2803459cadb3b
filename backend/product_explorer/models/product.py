"""Product entity: read-only catalog record with its spec attributes."""
from __future__ import annotations

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from product_explorer.db.session import Base
from product_explorer.models.base import TimestampMixin, UUIDPrimaryKeyMixin

CATEGORIES = ("phone", "tablet", "laptop", "desktop")


class Product(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # One of CATEGORIES; not enforced here, the seed data is the source of truth
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    brand: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    cpu: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    ram_gb: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    storage_gb: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 0 means "no built-in screen" / "no battery" (desktops)
    screen_inch: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    weight_kg: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    battery_wh: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    favorites: Mapped[list["Favorite"]] = relationship(
        "Favorite",
        back_populates="product",
        cascade="all, delete-orphan",
    )
