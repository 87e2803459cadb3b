"""
Tests for comparison grouping, prompt rendering, the model-retry state machine
and the templated fallback summary.
"""

import json

import pytest
from conftest import RecorderSpy, ScriptedCompletionClient

from product_explorer.core.errors import ValidationError
from product_explorer.services.comparison import (
    NOT_ENOUGH_COMPARABLE_MESSAGE,
    ComparisonGroup,
    ComparisonNarrator,
    UserPreferenceHint,
    build_comparison_prompt,
    build_fallback_comparison,
    group_products,
)
from product_explorer.services.completion import (
    CompletionError,
    CompletionUnavailableError,
    RateLimitedError,
)
from product_explorer.services.interaction_log import FALLBACK_MODEL_MARKER


def _product(pid, category, **overrides):
    product = {
        "id": pid,
        "name": f"Product {pid}",
        "category": category,
        "brand": "Brand",
        "price": 1000.0,
        "rating": 4.5,
        "cpu": "CPU",
        "ram_gb": 8,
        "storage_gb": 256,
        "screen_inch": 14.0,
        "weight_kg": 1.5,
        "battery_wh": 50.0,
    }
    product.update(overrides)
    return product


def _ids(products):
    return [p["id"] for p in products]


class TestGroupProducts:
    def test_two_laptops_beat_a_phone(self):
        group = group_products([_product("a", "laptop"), _product("b", "laptop"), _product("c", "phone")])
        assert _ids(group.comparable) == ["a", "b"]
        assert _ids(group.excluded) == ["c"]

    def test_one_of_each_prefers_laptop_desktop(self):
        group = group_products(
            [_product("p", "phone"), _product("t", "tablet"), _product("l", "laptop"), _product("d", "desktop")]
        )
        assert _ids(group.comparable) == ["l", "d"]
        assert _ids(group.excluded) == ["p", "t"]

    def test_larger_group_wins(self):
        group = group_products(
            [_product("l", "laptop"), _product("p", "phone"), _product("t", "tablet"), _product("p2", "phone")]
        )
        assert _ids(group.comparable) == ["p", "t", "p2"]
        assert _ids(group.excluded) == ["l"]

    def test_phone_and_tablet_pair(self):
        group = group_products([_product("p", "phone"), _product("t", "tablet")])
        assert _ids(group.comparable) == ["p", "t"]
        assert group.excluded == []

    def test_same_category_fallback_for_unpaired_categories(self):
        group = group_products([_product("w1", "watch"), _product("w2", "watch"), _product("l", "laptop")])
        assert _ids(group.comparable) == ["w1", "w2"]
        assert _ids(group.excluded) == ["l"]

    def test_nothing_comparable(self):
        group = group_products([_product("l", "laptop"), _product("p", "phone")])
        assert group.comparable == []
        assert _ids(group.excluded) == ["l", "p"]
        assert not group.is_comparable

    @pytest.mark.parametrize("count", [1, 5])
    def test_size_limits(self, count):
        with pytest.raises(ValidationError):
            group_products([_product(str(i), "laptop") for i in range(count)])


class TestUserPreferenceHint:
    def test_from_camel_case(self):
        hint = UserPreferenceHint.from_dict({"budget": "low", "screenSize": "large"})
        assert hint.budget == "low"
        assert hint.screen_size == "large"
        assert hint.usage is None

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValidationError) as exc:
            UserPreferenceHint.from_dict({"usage": "cooking"})
        assert exc.value.field == "userPreferences.usage"

    def test_one_directive_per_present_field(self):
        hint = UserPreferenceHint(budget="medium", mobility="portable")
        assert hint.directive_lines() == ["- Budget: medium range", "- Mobility Needs: portable"]


class TestComparisonPrompt:
    def test_lists_comparable_and_excluded(self):
        group = ComparisonGroup(
            comparable=[_product("a", "laptop", name="Dell XPS 15"), _product("b", "laptop", name="HP Spectre")],
            excluded=[_product("c", "phone", name="iPhone SE")],
        )
        prompt = build_comparison_prompt(group, UserPreferenceHint())
        compare_block, excluded_block = prompt.split("[EXCLUDED_PRODUCTS]\n")
        assert "Dell XPS 15" in compare_block and "HP Spectre" in compare_block
        assert "iPhone SE" in excluded_block
        assert "USER PREFERENCES" not in prompt

    def test_absent_preferences_leave_no_placeholder(self):
        group = ComparisonGroup(comparable=[_product("a", "laptop"), _product("b", "laptop")])
        prompt = build_comparison_prompt(group, UserPreferenceHint(usage="gaming"))
        assert "- Primary Usage: gaming" in prompt
        assert "Budget:" not in prompt
        assert "N/A" not in prompt
        assert "undefined" not in prompt

    def test_no_excluded_renders_none(self):
        group = ComparisonGroup(comparable=[_product("a", "laptop"), _product("b", "laptop")])
        assert "[EXCLUDED_PRODUCTS]\nNone." in build_comparison_prompt(group, UserPreferenceHint())


LAPTOPS = [
    _product("a", "laptop", name="Alpha", price=1500.0, rating=4.9, ram_gb=16, storage_gb=512, screen_inch=14.0, weight_kg=1.2),
    _product("b", "laptop", name="Bravo", price=900.0, rating=4.2, ram_gb=32, storage_gb=1024, screen_inch=16.0, weight_kg=2.4),
    _product("c", "laptop", name="Charlie", price=900.0, rating=4.9, ram_gb=8, storage_gb=256, screen_inch=13.3, weight_kg=1.1),
]


class TestFallbackComparison:
    def test_reports_extremes_with_first_in_order_ties(self):
        text = build_fallback_comparison(ComparisonGroup(comparable=list(LAPTOPS)), UserPreferenceHint())
        assert "Cheapest: Bravo at $900" in text
        assert "Highest rated: Alpha (4.9/5)" in text
        assert "Most RAM: Bravo (32GB)" in text

    def test_is_deterministic(self):
        group = ComparisonGroup(comparable=list(LAPTOPS))
        hint = UserPreferenceHint(budget="low", usage="gaming")
        assert build_fallback_comparison(group, hint) == build_fallback_comparison(group, hint)

    def test_one_sentence_per_preference(self):
        hint = UserPreferenceHint(budget="low", usage="gaming", screen_size="compact", mobility="ultraportable")
        text = build_fallback_comparison(ComparisonGroup(comparable=list(LAPTOPS)), hint)
        assert "For a low budget, the Bravo is the most affordable pick at $900." in text
        assert "For gaming, the Bravo has the most RAM (32GB)." in text
        assert "the Charlie has the smallest display (13.3\")" in text
        assert "the Charlie is the lightest (1.1kg)" in text

    def test_large_screen_and_work_usage(self):
        hint = UserPreferenceHint(screen_size="large", usage="work")
        text = build_fallback_comparison(ComparisonGroup(comparable=list(LAPTOPS)), hint)
        assert "the Bravo has the largest display (16\")" in text
        assert "For work, the Alpha is the highest rated (4.9/5)." in text

    def test_screen_preference_skips_screenless_products(self):
        desktops = [
            _product("m", "desktop", name="Mini", screen_inch=0),
            _product("i", "desktop", name="AllInOne", screen_inch=27.0),
        ]
        text = build_fallback_comparison(ComparisonGroup(comparable=desktops), UserPreferenceHint(screen_size="compact"))
        assert "the AllInOne has the smallest display" in text

    def test_no_preferences_no_extra_sentences(self):
        text = build_fallback_comparison(ComparisonGroup(comparable=list(LAPTOPS)), UserPreferenceHint())
        assert "For " not in text

    def test_mentions_excluded_products(self):
        group = ComparisonGroup(comparable=list(LAPTOPS[:2]), excluded=[_product("p", "phone", name="Pixel")])
        assert "Not compared (different category): Pixel." in build_fallback_comparison(group, UserPreferenceHint())


def _narrator(*outcomes, models=("model/one", "model/two", "model/three")):
    spy = RecorderSpy()
    client = ScriptedCompletionClient(*outcomes)
    narrator = ComparisonNarrator(client=client, models=list(models), recorder=spy)
    return narrator, client, spy


GROUP = ComparisonGroup(comparable=list(LAPTOPS[:2]))


class TestComparisonNarrator:
    def test_first_model_success(self):
        narrator, client, spy = _narrator("  A fine comparison.  \n")
        result = narrator.narrate(GROUP)
        assert result.text == "A fine comparison."
        assert result.model_used == "model/one"
        assert not result.is_fallback
        assert len(client.calls) == 1
        assert spy.entries[0]["model_used"] == "model/one"

    def test_rate_limit_retries_next_model_with_same_prompt(self):
        narrator, client, spy = _narrator(RateLimitedError("429", status_code=429), "Second opinion.")
        result = narrator.narrate(GROUP, UserPreferenceHint(budget="low"))
        assert result.text == "Second opinion."
        assert result.model_used == "model/two"
        assert [c["model"] for c in client.calls] == ["model/one", "model/two"]
        assert client.calls[0]["prompt"] == client.calls[1]["prompt"]
        assert [e["model_used"] for e in spy.entries] == ["model/one", "model/two"]
        assert json.loads(spy.entries[0]["response"])["status"] == 429

    def test_retries_only_once(self):
        narrator, client, spy = _narrator(
            RateLimitedError("429", status_code=429),
            RateLimitedError("429", status_code=429),
        )
        result = narrator.narrate(GROUP)
        assert result.is_fallback
        assert result.model_used == FALLBACK_MODEL_MARKER
        assert len(client.calls) == 2
        assert spy.entries[-1]["model_used"] == FALLBACK_MODEL_MARKER
        assert "Cheapest: Bravo" in result.text

    def test_other_error_is_terminal(self):
        narrator, client, spy = _narrator(CompletionError("upstream 500", status_code=500))
        result = narrator.narrate(GROUP)
        assert result.is_fallback
        assert len(client.calls) == 1
        assert [e["model_used"] for e in spy.entries] == ["model/one", FALLBACK_MODEL_MARKER]

    def test_rate_limit_with_single_model_falls_back(self):
        narrator, client, _ = _narrator(RateLimitedError("429", status_code=429), models=("only/model",))
        assert narrator.narrate(GROUP).is_fallback
        assert len(client.calls) == 1

    def test_missing_credential_falls_back_without_error_entry(self):
        narrator, _, spy = _narrator(CompletionUnavailableError("no key"))
        result = narrator.narrate(GROUP)
        assert result.is_fallback
        assert [e["model_used"] for e in spy.entries] == [FALLBACK_MODEL_MARKER]

    def test_unexpected_exception_never_escapes(self):
        narrator, _, _ = _narrator(ValueError("weird"))
        assert narrator.narrate(GROUP).is_fallback

    def test_not_enough_comparable_skips_the_model(self):
        narrator, client, spy = _narrator()
        result = narrator.narrate(ComparisonGroup(comparable=[LAPTOPS[0]], excluded=[_product("p", "phone")]))
        assert result.text == NOT_ENOUGH_COMPARABLE_MESSAGE
        assert client.calls == []
        assert spy.entries == []
