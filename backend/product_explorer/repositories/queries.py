"""
Exact SQL for the fixed-shape reads and writes: suggestions, favorites, AI log maintenance.
Use with parameter binding. Dynamic catalog filtering lives in product_repo (query builder).
LOWER(...) LIKE keeps the substring match case-insensitive on both Postgres and SQLite.
"""

# ---------------------------------------------------------------------------
# 1) Search suggestions: distinct brands / categories containing the query
#    :pattern comes from contains_pattern() (wildcards in the query escaped)
# ---------------------------------------------------------------------------
SQL_SUGGEST_BRANDS = """
SELECT DISTINCT p.brand
FROM products p
WHERE LOWER(p.brand) LIKE :pattern ESCAPE '\\'
ORDER BY p.brand ASC
LIMIT :limit;
"""

SQL_SUGGEST_CATEGORIES = """
SELECT DISTINCT p.category
FROM products p
WHERE LOWER(p.category) LIKE :pattern ESCAPE '\\'
ORDER BY p.category ASC
LIMIT :limit;
"""

# Product-name suggestions: name, brand or category containing the query
SQL_SUGGEST_PRODUCTS = """
SELECT p.name, p.brand, p.category
FROM products p
WHERE LOWER(p.name) LIKE :pattern ESCAPE '\\'
   OR LOWER(p.brand) LIKE :pattern ESCAPE '\\'
   OR LOWER(p.category) LIKE :pattern ESCAPE '\\'
ORDER BY p.name ASC
LIMIT :limit;
"""

# ---------------------------------------------------------------------------
# 2) Favorites: ids for one user (oldest first, i.e. the order they were added)
# ---------------------------------------------------------------------------
SQL_FAVORITE_PRODUCT_IDS = """
SELECT f.product_id
FROM favorites f
WHERE f.user_id = :user_id
ORDER BY f.created_at ASC, f.id ASC;
"""

SQL_DELETE_FAVORITE = """
DELETE FROM favorites WHERE user_id = :user_id AND product_id = :product_id;
"""

# ---------------------------------------------------------------------------
# 3) AI interaction log: explicit bulk clear (the only delete the log allows)
# ---------------------------------------------------------------------------
SQL_CLEAR_AI_LOGS = """
DELETE FROM ai_logs;
"""

LIKE_ESCAPE = "\\"


def contains_pattern(query: str) -> str:
    """'%<lowercased query>%' with the query's own LIKE wildcards taken literally."""
    escaped = (
        query.lower()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
