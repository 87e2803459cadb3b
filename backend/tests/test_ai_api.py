"""API tests for query parsing and AI comparison, with the completion client scripted."""

from conftest import RecorderSpy, ScriptedCompletionClient

from product_explorer.services.call_budget import CallBudget
from product_explorer.services.comparison import (
    NOT_ENOUGH_COMPARABLE_MESSAGE,
    ComparisonNarrator,
    get_comparison_narrator,
)
from product_explorer.services.completion import RateLimitedError
from product_explorer.services.interaction_log import FALLBACK_MODEL_MARKER
from product_explorer.services.query_intent import QueryIntentResolver, get_call_budget, get_query_resolver


def _use_resolver(*outcomes, limit=50):
    from main import app

    completion = ScriptedCompletionClient(*outcomes)
    resolver = QueryIntentResolver(
        client=completion,
        budget=CallBudget(limit=limit),
        model="test/parse",
        recorder=RecorderSpy(),
    )
    app.dependency_overrides[get_query_resolver] = lambda: resolver
    return completion


def _use_narrator(*outcomes):
    from main import app

    completion = ScriptedCompletionClient(*outcomes)
    narrator = ComparisonNarrator(client=completion, models=["test/a", "test/b"], recorder=RecorderSpy())
    app.dependency_overrides[get_comparison_narrator] = lambda: narrator
    return completion


class TestParseQuery:
    def test_structured_result(self, client):
        _use_resolver('{"category": "laptop", "brands": ["Dell"], "sortBy": "price", "sortDirection": "asc"}')
        resp = client.post("/ai/parse-query", json={"query": "cheapest dell laptop"})
        assert resp.status_code == 200
        assert resp.json() == {
            "originalQuery": "cheapest dell laptop",
            "parsedFilters": {"category": "laptop", "brands": ["Dell"], "sortBy": "price", "sortDirection": "asc"},
            "searchTerm": None,
        }

    def test_without_credentials_falls_back_to_text_search(self, client):
        resp = client.post("/ai/parse-query", json={"query": "gaming laptops"})
        assert resp.status_code == 200
        assert resp.json() == {"originalQuery": "gaming laptops", "parsedFilters": {}, "searchTerm": "gaming laptops"}

    def test_budget_is_keyed_by_caller(self, client):
        completion = _use_resolver('{"category": "phone"}', limit=1)
        first = client.post("/ai/parse-query", json={"query": "phones"}).json()
        second = client.post("/ai/parse-query", json={"query": "phones"}).json()
        assert first["parsedFilters"] == {"category": "phone"}
        assert second["parsedFilters"] == {}
        assert len(completion.calls) == 1

    def test_unconfigured_service_spends_no_budget(self, client):
        budget = get_call_budget()
        before = budget.remaining("ip:testclient")
        for _ in range(3):
            body = client.post("/ai/parse-query", json={"query": "phones"}).json()
            assert body["searchTerm"] == "phones"
        assert budget.remaining("ip:testclient") == before

    def test_empty_query_rejected(self, client):
        assert client.post("/ai/parse-query", json={"query": ""}).status_code == 422


class TestCompare:
    def test_model_comparison(self, client, products):
        completion = _use_narrator("## Dell vs HP\nPick the Dell.")
        ids = [products["Dell XPS 15"]["id"], products["HP Spectre x360"]["id"], products["iPhone SE"]["id"]]
        resp = client.post("/ai/compare", json={"productIds": ids, "userPreferences": {"usage": "gaming"}})
        assert resp.status_code == 200
        body = resp.json()
        assert body["comparison"] == "## Dell vs HP\nPick the Dell."
        assert body["comparable"] == ids[:2]
        assert body["excluded"] == [ids[2]]
        assert [p["id"] for p in body["products"]] == ids
        assert body["isFallback"] is False
        assert "- Primary Usage: gaming" in completion.calls[0]["prompt"]

    def test_rate_limited_twice_uses_template(self, client, products):
        _use_narrator(RateLimitedError("429", status_code=429), RateLimitedError("429", status_code=429))
        ids = [products["iPad Air"]["id"], products["iPhone SE"]["id"]]
        body = client.post("/ai/compare", json={"productIds": ids}).json()
        assert body["isFallback"] is True
        assert body["modelUsed"] == FALLBACK_MODEL_MARKER
        assert "Cheapest: iPhone SE" in body["comparison"]

    def test_not_enough_comparable(self, client, products):
        completion = _use_narrator()
        ids = [products["Dell XPS 15"]["id"], products["iPhone SE"]["id"]]
        resp = client.post("/ai/compare", json={"productIds": ids})
        assert resp.status_code == 200
        assert resp.json()["comparison"] == NOT_ENOUGH_COMPARABLE_MESSAGE
        assert resp.json()["comparable"] == []
        assert resp.json()["excluded"] == ids
        assert completion.calls == []

    def test_unknown_product_is_404(self, client, products):
        ids = [products["Dell XPS 15"]["id"], "missing-id"]
        assert client.post("/ai/compare", json={"productIds": ids}).status_code == 404

    def test_too_many_products(self, client, products):
        ids = [p["id"] for p in list(products.values())[:5]]
        assert client.post("/ai/compare", json={"productIds": ids}).status_code == 422

    def test_bad_preference_tier(self, client, products):
        ids = [products["Dell XPS 15"]["id"], products["HP Spectre x360"]["id"]]
        resp = client.post("/ai/compare", json={"productIds": ids, "userPreferences": {"budget": "free"}})
        assert resp.status_code == 422

    def test_fallback_is_logged_without_credentials(self, client, products, ai_logs):
        ids = [products["Dell XPS 15"]["id"], products["Lenovo Yoga 9i"]["id"]]
        body = client.post("/ai/compare", json={"productIds": ids, "userPreferences": {"budget": "low"}}).json()
        assert body["isFallback"] is True
        assert "For a low budget, the Lenovo Yoga 9i" in body["comparison"]
        logs = ai_logs()
        assert [entry["model_used"] for entry in logs] == [FALLBACK_MODEL_MARKER]


class TestCompareScores:
    def test_scores(self, client, products):
        ids = [products["Dell XPS 15"]["id"], products["HP Spectre x360"]["id"]]
        resp = client.post("/compare/scores", json={"productIds": ids, "attributes": ["price", "ram_gb"]})
        assert resp.status_code == 200
        body = resp.json()
        dell, hp = ids
        assert body["tags"][dell] == {"price": "loser", "ram_gb": "winner"}
        assert body["tags"][hp] == {"price": "winner", "ram_gb": "loser"}
        assert sorted(body["recommended"]) == sorted(ids)

    def test_unknown_attribute(self, client, products):
        ids = [products["Dell XPS 15"]["id"], products["HP Spectre x360"]["id"]]
        resp = client.post("/compare/scores", json={"productIds": ids, "attributes": ["color"]})
        assert resp.status_code == 400
        assert resp.json()["field"] == "attributes"
