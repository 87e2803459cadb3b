#!/usr/bin/env python3
"""
End-to-end check of the catalog DB layer against a live, seeded database.

Run from the backend directory (after scripts/seed_db.py):
  python scripts/check_db_pipeline.py

Touches only rows it creates (a throwaway user, its favorites and one log entry).
"""
from __future__ import annotations

import os
import sys
import uuid

# Ensure backend is on path so product_explorer is importable (whether run as script or from repo root)
_script_dir = os.path.dirname(os.path.abspath(__file__))
_backend = os.path.dirname(_script_dir)
if _backend not in sys.path:
    sys.path.insert(0, _backend)

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError

from product_explorer.core.security import hash_password
from product_explorer.db.session import get_db
from product_explorer.models import AiLog, User
from product_explorer.repositories import (
    create_ai_log,
    create_user,
    find_products,
    get_product,
    get_products_by_ids,
    is_favorited,
    list_recent_ai_logs,
    toggle_favorite,
)
from product_explorer.services.filters import normalize_filters

TEST_PREFIX = "check-e2e-"


def _check_db() -> None:
    """Fail fast with a clear message if Postgres is not reachable."""
    try:
        with get_db() as db:
            db.execute(select(1))
    except OperationalError as e:
        print(
            "[FAIL] Cannot connect to the database. Is it running?\n"
            "  1. Set DATABASE_URL in backend/.env.\n"
            "  2. Seed it: python scripts/seed_db.py\n"
            "  3. Run this script again.",
            file=sys.stderr,
        )
        raise SystemExit(1) from e


def _run() -> None:
    _check_db()
    uid = str(uuid.uuid4())[:8]

    # --- a) Filtered read respects every bound ---
    filters = normalize_filters({"category": "laptop", "maxPrice": "2000", "sortBy": "price"})
    with get_db() as db:
        items, total = find_products(db, filters)
    assert total > 0, "Expected seeded laptops under $2000; run scripts/seed_db.py first"
    assert all(p["category"] == "laptop" and p["price"] <= 2000 for p in items)
    prices = [p["price"] for p in items]
    assert prices == sorted(prices), f"Expected ascending prices; got {prices}"
    print(f"[PASS] Filtered read: {total} laptops under $2000, sorted by price")

    # --- b) Detail and batch lookup ---
    product_id = items[0]["id"]
    with get_db() as db:
        assert get_product(db, product_id) is not None
        batch = get_products_by_ids(db, [p["id"] for p in items[:3]])
    assert len(batch) == min(3, len(items))
    print("[PASS] Detail + batch lookup")

    # --- c) Favorite toggle twice returns to the original state ---
    with get_db() as db:
        user = create_user(db, f"{TEST_PREFIX}{uid}@example.com", hash_password("not-used"))
        user_id = user.id
    with get_db() as db:
        assert toggle_favorite(db, user_id, product_id) is True
    with get_db() as db:
        assert toggle_favorite(db, user_id, product_id) is False
        assert not is_favorited(db, user_id, product_id)
    print("[PASS] Favorite toggle on/off")

    # --- d) Interaction log append + read back ---
    with get_db() as db:
        log_id = create_ai_log(db, prompt=f"{TEST_PREFIX}{uid}", response="{}", model_used="check")
    with get_db() as db:
        recent_ids = [entry["id"] for entry in list_recent_ai_logs(db, limit=50)]
    assert log_id in recent_ids, "Fresh log entry should be among the most recent"
    print("[PASS] AI log append + recent read")

    # --- cleanup ---
    with get_db() as db:
        db.execute(delete(AiLog).where(AiLog.id == log_id))
        db.execute(delete(User).where(User.id == user_id))

    print("\nAll assertions passed.")


def main() -> int:
    try:
        _run()
        return 0
    except Exception as e:
        print(f"\n[FAIL] {e}", file=sys.stderr)
        raise


if __name__ == "__main__":
    sys.exit(main())
