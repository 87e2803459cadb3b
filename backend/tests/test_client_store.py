"""Tests for the client-side product and auth stores, driven against the API through TestClient."""

import httpx
from conftest import DEMO_EMAIL, DEMO_PASSWORD, RecorderSpy, ScriptedCompletionClient

from product_explorer.client.store import AuthStore, ProductStore
from product_explorer.services.call_budget import CallBudget
from product_explorer.services.query_intent import QueryIntentResolver, get_query_resolver


class TestFilterState:
    def test_set_filters_merges_and_resets_page(self, client):
        store = ProductStore(client)
        store.set_page(3)
        store.set_filters(category="laptop")
        store.set_filters(brands=["Dell"])
        assert store.filters == {"category": "laptop", "brands": ["Dell"]}
        assert store.current_page == 1

    def test_none_deletes_the_key(self, client):
        store = ProductStore(client)
        store.set_filters(category="laptop", maxPrice=1000)
        store.set_filters(maxPrice=None)
        assert store.filters == {"category": "laptop"}
        assert "maxPrice" not in store.request_params()

    def test_clear_filter(self, client):
        store = ProductStore(client)
        store.set_filters(category="laptop", sortBy="price")
        store.clear_filter("category")
        assert store.filters == {"sortBy": "price"}

    def test_url_round_trip(self, client):
        store = ProductStore(client)
        store.set_filters(category="phone", brands=["Apple", "Samsung"], minPrice=200, sortBy="price", sortDirection="desc")
        store.set_search_query("pro")
        store.set_page(2)
        params = store.to_query_params()
        assert params == {
            "q": "pro",
            "category": "phone",
            "brands": "Apple,Samsung",
            "minPrice": "200",
            "sortBy": "price",
            "sortDirection": "desc",
            "page": "2",
        }

        restored = ProductStore(client)
        restored.initialize_from_params(params)
        assert restored.filters == store.filters
        assert restored.search_query == "pro"
        assert restored.current_page == 2


class TestFetching:
    def test_reset_then_fetch_matches_fresh_session(self, client, products):
        fresh = ProductStore(client)
        fresh.fetch_products()

        store = ProductStore(client)
        store.set_filters(category="laptop", sortBy="price")
        store.set_search_query("dell")
        store.fetch_products()
        store.reset_filters()
        store.fetch_products()

        assert store.products == fresh.products
        assert store.current_page == 1
        assert store.total_count == len(products)

    def test_filtered_fetch(self, client, products):
        store = ProductStore(client)
        store.set_filters(category="tablet")
        store.fetch_products()
        assert store.error is None
        assert {p["category"] for p in store.products} == {"tablet"}
        assert store.total_count == 2

    def test_error_is_recorded_not_raised(self, client, products):
        store = ProductStore(client)
        store.set_filters(minPrice=-5)
        store.fetch_products()
        assert store.error == "must not be negative"
        assert store.is_loading is False

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        store = ProductStore(httpx.Client(base_url="http://api.test", transport=httpx.MockTransport(handler)))
        store.fetch_products()
        assert store.error == "Failed to fetch products"

    def test_fetch_product(self, client, products):
        store = ProductStore(client)
        store.fetch_product(products["Mac mini"]["id"])
        assert store.current_product["name"] == "Mac mini"
        store.fetch_product("missing")
        assert store.current_product is None
        assert store.error == "Product not found"


class TestParseSearchQuery:
    def test_applies_parsed_filters(self, client, products):
        from main import app

        resolver = QueryIntentResolver(
            client=ScriptedCompletionClient('{"category": "laptop", "brands": ["Dell"], "sortBy": "price"}'),
            budget=CallBudget(limit=5),
            model="test/parse",
            recorder=RecorderSpy(),
        )
        app.dependency_overrides[get_query_resolver] = lambda: resolver

        store = ProductStore(client)
        store.set_filters(category="phone")
        store.parse_search_query("cheapest dell laptop")
        assert store.filters == {"category": "laptop", "brands": ["Dell"], "sortBy": "price"}
        assert store.search_query == ""
        assert [p["name"] for p in store.products] == ["Dell XPS 15"]

    def test_falls_back_to_text_search(self, client, products):
        store = ProductStore(client)
        store.parse_search_query("Galaxy")
        assert store.filters == {}
        assert store.search_query == "Galaxy"
        assert store.total_count == 2


class TestFavoritesAndComparison:
    def test_toggle_favorite_follows_server(self, auth_client, products):
        store = ProductStore(auth_client)
        pid = products["iPad Air"]["id"]
        assert store.toggle_favorite(pid) is True
        assert store.is_favorite(pid)
        assert store.toggle_favorite(pid) is False
        assert not store.is_favorite(pid)

    def test_load_favorites(self, auth_client, products):
        pid = products["Dell XPS 15"]["id"]
        auth_client.post("/favorites", json={"productId": pid})
        store = ProductStore(auth_client)
        store.load_favorites()
        assert store.favorite_product_ids == [pid]

    def test_toggle_anonymous_sets_error(self, client, products):
        store = ProductStore(client)
        assert store.toggle_favorite(products["iPad Air"]["id"]) is None
        assert store.error == "Not authenticated"

    def test_comparison_list_limits(self, client):
        store = ProductStore(client)
        items = [{"id": str(i), "category": "laptop"} for i in range(5)]
        assert [store.add_to_comparison(p) for p in items] == [True, True, True, True, False]
        assert store.add_to_comparison(items[0]) is False
        assert len(store.comparison_list) == 4

    def test_summary_cleared_below_two(self, client):
        store = ProductStore(client)
        for i in range(3):
            store.add_to_comparison({"id": str(i)})
        store.comparison_summary = "summary"
        store.remove_from_comparison("0")
        assert store.comparison_summary == "summary"
        store.remove_from_comparison("1")
        assert store.comparison_summary is None

    def test_fetch_summary_and_scores(self, client, products):
        store = ProductStore(client)
        for name in ("Dell XPS 15", "Lenovo Yoga 9i"):
            store.fetch_product(products[name]["id"])
            store.add_to_comparison(store.current_product)
        store.fetch_comparison_summary({"budget": "low"})
        assert "Cheapest: Lenovo Yoga 9i" in store.comparison_summary

        scores = store.comparison_scores(["price", "ram_gb"])
        dell, lenovo = products["Dell XPS 15"]["id"], products["Lenovo Yoga 9i"]["id"]
        assert scores.tags[lenovo]["price"] == "winner"
        assert scores.tags[dell]["ram_gb"] == "winner"

    def test_summary_needs_two_products(self, client):
        store = ProductStore(client)
        store.add_to_comparison({"id": "only"})
        store.fetch_comparison_summary()
        assert store.comparison_summary is None


class TestAuthStore:
    def test_login_check_logout(self, client, demo_user):
        auth = AuthStore(client)
        assert auth.login(DEMO_EMAIL, DEMO_PASSWORD)
        assert auth.user["email"] == DEMO_EMAIL
        assert auth.check_auth()
        auth.logout()
        assert auth.user is None
        assert not auth.is_authenticated

    def test_failed_login(self, client, demo_user):
        auth = AuthStore(client)
        assert not auth.login(DEMO_EMAIL, "wrong")
        assert auth.error == "Invalid credentials"
        assert auth.user is None

    def test_check_auth_anonymous(self, client):
        auth = AuthStore(client)
        assert not auth.check_auth()
