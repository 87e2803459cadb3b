#!/usr/bin/env python3
"""
Create tables and load the demo catalog plus the demo user.

Run from the backend directory:
  python scripts/seed_db.py

Existing favorites, users and products are deleted first.
"""
from __future__ import annotations

import logging
import os
import sys

# Ensure backend is on path so product_explorer is importable (whether run as script or from repo root)
_script_dir = os.path.dirname(os.path.abspath(__file__))
_backend = os.path.dirname(_script_dir)
if _backend not in sys.path:
    sys.path.insert(0, _backend)

from sqlalchemy import delete

from product_explorer.core.security import hash_password
from product_explorer.db.session import get_db, init_db
from product_explorer.models import Favorite, Product, User

logger = logging.getLogger("seed_db")

DEMO_EMAIL = "test@example.com"
DEMO_PASSWORD = "password123"

_BLOB = "https://njzwljh5hbgbdvlu.public.blob.vercel-storage.com"
IMAGE_URLS = {
    "phone": {"Apple": f"{_BLOB}/iphone.webp", "default": f"{_BLOB}/android.webp"},
    "tablet": {"Apple": f"{_BLOB}/ipad.webp", "default": f"{_BLOB}/androidTab.webp"},
    "desktop": {"Apple": f"{_BLOB}/imac.webp", "default": f"{_BLOB}/desktop.webp"},
    "laptop": {"Apple": f"{_BLOB}/macair.webp", "default": f"{_BLOB}/thinkpad.webp"},
}

# name, category, brand, price, rating, weight_kg, cpu, ram_gb, storage_gb, screen_inch, battery_wh
CATALOG = [
    ("iPhone 15 Pro", "phone", "Apple", 1299.99, 4.8, 0.187, "A17 Pro", 8, 256, 6.1, 15),
    ("iPhone 15", "phone", "Apple", 899.0, 4.6, 0.171, "A16 Bionic", 6, 128, 6.1, 14),
    ('iPad Pro 12.9"', "tablet", "Apple", 1099.0, 4.9, 0.682, "M2", 8, 256, 12.9, 40),
    ("iPad Air", "tablet", "Apple", 599.0, 4.7, 0.462, "M1", 8, 64, 10.9, 28),
    ('MacBook Air 15"', "laptop", "Apple", 1299.0, 4.8, 1.51, "M2", 8, 256, 15.3, 66),
    ('MacBook Pro 14"', "laptop", "Apple", 1999.0, 4.9, 1.6, "M3 Pro", 18, 512, 14.2, 70),
    ('iMac 24"', "desktop", "Apple", 1499.0, 4.7, 4.48, "M3", 8, 512, 24, 0),
    ("Samsung Galaxy S24 Ultra", "phone", "Samsung", 1199.99, 4.7, 0.232, "Snapdragon 8 Gen 3", 12, 512, 6.8, 19),
    ("Google Pixel 8 Pro", "phone", "Google", 999.0, 4.6, 0.213, "Google Tensor G3", 12, 256, 6.7, 18),
    ("Samsung Galaxy Z Fold 5", "phone", "Samsung", 1799.0, 4.5, 0.253, "Snapdragon 8 Gen 2", 12, 512, 7.6, 17),
    ("Samsung Galaxy Tab S9", "tablet", "Samsung", 799.0, 4.6, 0.498, "Snapdragon 8 Gen 2", 8, 128, 11, 32),
    ("Lenovo Tab P12", "tablet", "Lenovo", 349.99, 4.4, 0.615, "MediaTek Dimensity 7050", 8, 128, 12.7, 39),
    ("Dell XPS 15", "laptop", "Dell", 2199.0, 4.7, 1.92, "Intel Core i9-13900H", 32, 1024, 15.6, 86),
    ("Lenovo ThinkPad X1 Carbon Gen 11", "laptop", "Lenovo", 1599.5, 4.8, 1.12, "Intel Core i7-1355U", 16, 512, 14, 57),
    ("HP Spectre x360", "laptop", "HP", 1249.99, 4.5, 1.36, "Intel Core i7-1355U", 16, 512, 13.5, 66),
    ("Asus ROG Zephyrus G14", "laptop", "Asus", 1899.0, 4.6, 1.72, "AMD Ryzen 9 7940HS", 16, 1024, 14, 76),
    ("HP Pavilion Gaming Desktop", "desktop", "HP", 999.99, 4.4, 8.5, "AMD Ryzen 7 5700G", 16, 1024, 0, 0),
    ("Dell Inspiron 27 All-in-One", "desktop", "Dell", 1199.0, 4.5, 7.2, "Intel Core i7-1355U", 16, 512, 27, 0),
    ("OnePlus 12", "phone", "OnePlus", 799.0, 4.5, 0.22, "Snapdragon 8 Gen 3", 16, 512, 6.82, 20),
    ("Microsoft Surface Laptop 5", "laptop", "Microsoft", 1199.0, 4.3, 1.27, "Intel Core i5-1235U", 8, 512, 13.5, 47),
    ("Razer Blade 16", "laptop", "Razer", 2699.99, 4.6, 2.45, "Intel Core i9-13950HX", 32, 2048, 16, 95),
    ("Google Pixel Tablet", "tablet", "Google", 499.0, 4.2, 0.493, "Google Tensor G2", 8, 128, 10.95, 27),
    ("Xiaomi 14 Ultra", "phone", "Xiaomi", 1150.0, 4.7, 0.224, "Snapdragon 8 Gen 3", 16, 512, 6.73, 19),
    ("Lenovo Yoga 9i", "laptop", "Lenovo", 1399.0, 4.6, 1.4, "Intel Core i7-1360P", 16, 1024, 14, 75),
    ("Mac mini", "desktop", "Apple", 599.0, 4.8, 1.18, "M2", 8, 256, 0, 0),
    ("Acer Predator Orion 3000", "desktop", "Acer", 1499.99, 4.5, 9.8, "Intel Core i7-12700F", 16, 1024, 0, 0),
    ("iPhone SE", "phone", "Apple", 429.0, 4.4, 0.144, "A15 Bionic", 4, 64, 4.7, 8),
    ("Samsung Galaxy A54", "phone", "Samsung", 449.99, 4.3, 0.202, "Exynos 1380", 8, 128, 6.4, 19),
    ('MacBook Pro 16"', "laptop", "Apple", 2499.0, 4.9, 2.15, "M3 Max", 36, 1024, 16.2, 100),
    ("Microsoft Surface Pro 9", "tablet", "Microsoft", 999.0, 4.5, 0.879, "Intel Core i5-1235U", 8, 256, 13, 47),
    ("Alienware Aurora R15", "desktop", "Dell", 2899.99, 4.7, 16.5, "Intel Core i9-13900KF", 32, 2048, 0, 0),
]


def catalog_products() -> list[Product]:
    products = []
    for name, category, brand, price, rating, weight, cpu, ram, storage, screen, battery in CATALOG:
        images = IMAGE_URLS[category]
        products.append(
            Product(
                name=name,
                category=category,
                brand=brand,
                price=price,
                rating=rating,
                weight_kg=weight,
                cpu=cpu,
                ram_gb=ram,
                storage_gb=storage,
                screen_inch=screen,
                battery_wh=battery,
                image_url=images.get(brand, images["default"]),
            )
        )
    return products


def seed() -> int:
    init_db()
    with get_db() as db:
        # Favorites reference users and products
        db.execute(delete(Favorite))
        db.execute(delete(User))
        db.execute(delete(Product))
        logger.info("Cleared favorites, users and products")

        db.add(User(email=DEMO_EMAIL, name="Test User", password_hash=hash_password(DEMO_PASSWORD)))
        products = catalog_products()
        db.add_all(products)
    logger.info("Created user %s and %d products", DEMO_EMAIL, len(products))
    return len(products)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    seed()
