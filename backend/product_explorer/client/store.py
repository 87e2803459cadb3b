"""
Client-side session stores that talk to the API over HTTP.

Any httpx.Client works (a real one with base_url, or FastAPI's TestClient).
State lives on the store; every fetch records an error message instead of raising.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from product_explorer.services.filters import DEFAULT_LIMIT, parse_brands
from product_explorer.services.scoring import ScoreResult, score_products

logger = logging.getLogger(__name__)

MAX_COMPARISON = 4

# Filter keys carried in the URL, in the order they are written
FILTER_KEYS = (
    "category",
    "brands",
    "minPrice",
    "maxPrice",
    "minRam",
    "minStorage",
    "sortBy",
    "sortDirection",
)
NUMERIC_FILTER_KEYS = ("minPrice", "maxPrice", "minRam", "minStorage")


def _error_message(resp: httpx.Response, default: str) -> str:
    try:
        data = resp.json()
    except ValueError:
        return default
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("error")
        if isinstance(detail, str):
            return detail
    return default


def _number(value: str) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else number


class ProductStore:
    """Browse, search, favorites and comparison state for one UI session."""

    def __init__(self, http: httpx.Client, page_size: int = DEFAULT_LIMIT) -> None:
        self.http = http
        self.page_size = page_size

        self.products: list[dict[str, Any]] = []
        self.current_product: Optional[dict[str, Any]] = None
        self.filters: dict[str, Any] = {}
        self.search_query = ""
        self.current_page = 1
        self.total_pages = 1
        self.total_count = 0
        self.is_loading = False
        self.error: Optional[str] = None

        self.favorite_product_ids: list[str] = []

        self.comparison_list: list[dict[str, Any]] = []
        self.comparison_summary: Optional[str] = None
        self.is_comparing_loading = False

    # -- filters -----------------------------------------------------------

    def set_filters(self, **changes: Any) -> None:
        """Merge changes into the filters; a None value removes that key. Back to page 1."""
        for key, value in changes.items():
            if value is None:
                self.filters.pop(key, None)
            else:
                self.filters[key] = value
        self.current_page = 1

    def clear_filter(self, key: str) -> None:
        self.set_filters(**{key: None})

    def reset_filters(self) -> None:
        self.filters = {}
        self.search_query = ""
        self.current_page = 1

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def set_page(self, page: int) -> None:
        self.current_page = max(1, int(page))

    def request_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.search_query:
            params["search"] = self.search_query
        for key in FILTER_KEYS:
            value = self.filters.get(key)
            if value is None:
                continue
            if key == "brands":
                if value:
                    params[key] = ",".join(value)
            else:
                params[key] = str(value)
        params["page"] = str(self.current_page)
        params["limit"] = str(self.page_size)
        return params

    # -- catalog -----------------------------------------------------------

    def fetch_products(self) -> None:
        self.is_loading = True
        self.error = None
        try:
            resp = self.http.get("/products", params=self.request_params())
            if resp.status_code != 200:
                self.error = _error_message(resp, "Failed to fetch products")
                return
            data = resp.json()
            self.products = data["products"]
            self.total_pages = data["pagination"]["totalPages"]
            self.total_count = data["pagination"]["totalCount"]
            self.current_page = data["pagination"]["page"]
        except httpx.HTTPError as e:
            logger.warning("Fetching products failed: %s", e)
            self.error = "Failed to fetch products"
        finally:
            self.is_loading = False

    def fetch_product(self, product_id: str) -> None:
        self.is_loading = True
        self.error = None
        try:
            resp = self.http.get(f"/products/{product_id}")
            if resp.status_code != 200:
                self.current_product = None
                self.error = _error_message(resp, "Failed to fetch product")
                return
            self.current_product = resp.json()
        except httpx.HTTPError as e:
            logger.warning("Fetching product %s failed: %s", product_id, e)
            self.error = "Failed to fetch product"
        finally:
            self.is_loading = False

    def parse_search_query(self, query: str) -> None:
        """
        Ask the API to turn free text into filters, then fetch.
        Parsed filters replace the current ones; on failure the query is used
        as a plain text search with the filters left as they were.
        """
        self.error = None
        self.search_query = query
        try:
            resp = self.http.post("/ai/parse-query", json={"query": query})
            if resp.status_code != 200:
                self.error = _error_message(resp, "Failed to parse search query")
            else:
                data = resp.json()
                self.filters = {k: v for k, v in data.get("parsedFilters", {}).items() if k in FILTER_KEYS}
                self.search_query = data.get("searchTerm") or ""
                self.current_page = 1
        except httpx.HTTPError as e:
            logger.warning("Parsing search query failed: %s", e)
            self.error = "Failed to parse search query"
        self.fetch_products()

    # -- favorites ---------------------------------------------------------

    def load_favorites(self) -> None:
        try:
            resp = self.http.get("/favorites")
        except httpx.HTTPError as e:
            logger.warning("Loading favorites failed: %s", e)
            return
        if resp.status_code == 200:
            self.favorite_product_ids = list(resp.json().get("favoriteProductIds", []))
        elif resp.status_code == 401:
            self.favorite_product_ids = []

    def toggle_favorite(self, product_id: str) -> Optional[bool]:
        """Server toggle, then mirror the new state locally. None if the server refused."""
        try:
            resp = self.http.post("/favorites", json={"productId": product_id})
        except httpx.HTTPError as e:
            logger.warning("Toggling favorite failed: %s", e)
            self.error = "Failed to update favorites"
            return None
        if resp.status_code != 200:
            self.error = _error_message(resp, "Failed to update favorites")
            return None
        favorited = bool(resp.json()["isFavorited"])
        if favorited and product_id not in self.favorite_product_ids:
            self.favorite_product_ids.append(product_id)
        elif not favorited and product_id in self.favorite_product_ids:
            self.favorite_product_ids.remove(product_id)
        return favorited

    def is_favorite(self, product_id: str) -> bool:
        return product_id in self.favorite_product_ids

    # -- comparison --------------------------------------------------------

    def add_to_comparison(self, product: Mapping[str, Any]) -> bool:
        if len(self.comparison_list) >= MAX_COMPARISON:
            return False
        if any(p["id"] == product["id"] for p in self.comparison_list):
            return False
        self.comparison_list.append(dict(product))
        return True

    def remove_from_comparison(self, product_id: str) -> None:
        self.comparison_list = [p for p in self.comparison_list if p["id"] != product_id]
        if len(self.comparison_list) < 2:
            self.comparison_summary = None

    def clear_comparison(self) -> None:
        self.comparison_list = []
        self.comparison_summary = None

    def fetch_comparison_summary(self, preferences: Optional[Mapping[str, str]] = None) -> None:
        if len(self.comparison_list) < 2:
            return
        self.is_comparing_loading = True
        body: dict[str, Any] = {"productIds": [p["id"] for p in self.comparison_list]}
        if preferences:
            body["userPreferences"] = {k: v for k, v in preferences.items() if v}
        try:
            resp = self.http.post("/ai/compare", json=body)
            if resp.status_code != 200:
                self.error = _error_message(resp, "Failed to generate comparison")
                return
            self.comparison_summary = resp.json()["comparison"]
        except httpx.HTTPError as e:
            logger.warning("Comparison request failed: %s", e)
            self.error = "Failed to generate comparison"
        finally:
            self.is_comparing_loading = False

    def comparison_scores(self, attributes: Optional[list[str]] = None) -> ScoreResult:
        return score_products(self.comparison_list, attributes)

    # -- URL state ---------------------------------------------------------

    def to_query_params(self) -> dict[str, str]:
        """Shareable URL state: q, filters and a non-default page."""
        params: dict[str, str] = {}
        if self.search_query:
            params["q"] = self.search_query
        for key in FILTER_KEYS:
            value = self.filters.get(key)
            if value is None:
                continue
            params[key] = ",".join(value) if key == "brands" else str(value)
        if self.current_page > 1:
            params["page"] = str(self.current_page)
        return params

    def initialize_from_params(self, params: Mapping[str, str]) -> None:
        filters: dict[str, Any] = {}
        for key in FILTER_KEYS:
            raw = params.get(key)
            if not raw:
                continue
            if key == "brands":
                brands = parse_brands(raw)
                if brands:
                    filters[key] = brands
            elif key in NUMERIC_FILTER_KEYS:
                number = _number(raw)
                if number is not None:
                    filters[key] = number
            else:
                filters[key] = raw
        self.filters = filters
        self.search_query = params.get("q", "")
        page = _number(params.get("page", "1"))
        self.current_page = int(page) if page and page >= 1 else 1


class AuthStore:
    """Signed-in user state; the session itself is the cookie kept by the http client."""

    def __init__(self, http: httpx.Client) -> None:
        self.http = http
        self.user: Optional[dict[str, Any]] = None
        self.is_loading = False
        self.error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def login(self, email: str, password: str) -> bool:
        self.is_loading = True
        self.error = None
        try:
            resp = self.http.post("/auth/login", json={"email": email, "password": password})
            if resp.status_code != 200:
                self.user = None
                self.error = _error_message(resp, "Login failed")
                return False
            self.user = resp.json()["user"]
            return True
        except httpx.HTTPError as e:
            logger.warning("Login request failed: %s", e)
            self.error = "Login failed"
            return False
        finally:
            self.is_loading = False

    def logout(self) -> None:
        try:
            self.http.post("/auth/logout")
        except httpx.HTTPError as e:
            logger.warning("Logout request failed: %s", e)
        self.user = None

    def check_auth(self) -> bool:
        self.is_loading = True
        try:
            resp = self.http.get("/auth/me")
            self.user = resp.json()["user"] if resp.status_code == 200 else None
        except httpx.HTTPError as e:
            logger.warning("Auth check failed: %s", e)
            self.user = None
        finally:
            self.is_loading = False
        return self.user is not None
