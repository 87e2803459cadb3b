"""
Comparison grouping and narration for 2-4 selected products.

The grouper keeps prompts coherent by comparing only related categories.
The narrator always returns text: model output when a call succeeds, a
deterministic templated summary otherwise.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from product_explorer.core.config import get_settings
from product_explorer.core.errors import ValidationError
from product_explorer.services.completion import (
    CompletionClient,
    CompletionError,
    CompletionUnavailableError,
    OpenRouterClient,
    RateLimitedError,
)
from product_explorer.services.interaction_log import (
    FALLBACK_MODEL_MARKER,
    InteractionRecorder,
    as_log_text,
    record_interaction,
)

logger = logging.getLogger(__name__)

MIN_COMPARE = 2
MAX_COMPARE = 4

# Checked in this order; on equal size the earlier group wins
PAIRABLE_GROUPS: tuple[tuple[str, ...], ...] = (
    ("laptop", "desktop"),
    ("phone", "tablet"),
)

NOT_ENOUGH_COMPARABLE_MESSAGE = (
    "An AI comparison could not be generated because there are no two or more products "
    "from similar categories selected. Please select at least two phones/tablets or two "
    "laptops/desktops to compare."
)

PREFERENCE_CHOICES = {
    "budget": ("low", "medium", "high"),
    "screenSize": ("compact", "standard", "large"),
    "usage": ("basic", "work", "gaming", "creative"),
    "mobility": ("desktop", "portable", "ultraportable"),
}


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

@dataclass
class ComparisonGroup:
    comparable: list[dict[str, Any]] = field(default_factory=list)
    excluded: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_comparable(self) -> bool:
        return len(self.comparable) >= MIN_COMPARE


def group_products(products: Sequence[Mapping[str, Any]]) -> ComparisonGroup:
    """
    Split 2-4 products into the largest pairable-category subset and the rest.
    Falls back to the largest single-category subset when no pairable group has
    two members. Input order is preserved on both sides.
    """
    if not MIN_COMPARE <= len(products) <= MAX_COMPARE:
        raise ValidationError("productIds", f"between {MIN_COMPARE} and {MAX_COMPARE} products are required")

    best: list[Mapping[str, Any]] = []
    for group in PAIRABLE_GROUPS:
        members = [p for p in products if p.get("category") in group]
        if len(members) > len(best):
            best = members

    if len(best) < MIN_COMPARE:
        by_category: dict[Any, list[Mapping[str, Any]]] = {}
        for p in products:
            by_category.setdefault(p.get("category"), []).append(p)
        largest = max(by_category.values(), key=len)
        best = largest if len(largest) >= MIN_COMPARE else []

    chosen = {id(p) for p in best}
    return ComparisonGroup(
        comparable=[dict(p) for p in best],
        excluded=[dict(p) for p in products if id(p) not in chosen],
    )


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UserPreferenceHint:
    budget: Optional[str] = None
    screen_size: Optional[str] = None
    usage: Optional[str] = None
    mobility: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "UserPreferenceHint":
        if not data:
            return cls()
        values: dict[str, Optional[str]] = {}
        for key, choices in PREFERENCE_CHOICES.items():
            value = data.get(key)
            if value is None and key == "screenSize":
                value = data.get("screen_size")
            if value is None or value == "":
                values[key] = None
                continue
            if value not in choices:
                raise ValidationError(f"userPreferences.{key}", f"must be one of {', '.join(choices)}")
            values[key] = value
        return cls(
            budget=values["budget"],
            screen_size=values["screenSize"],
            usage=values["usage"],
            mobility=values["mobility"],
        )

    def is_empty(self) -> bool:
        return not any((self.budget, self.screen_size, self.usage, self.mobility))

    def directive_lines(self) -> list[str]:
        lines = []
        if self.budget:
            lines.append(f"- Budget: {self.budget} range")
        if self.screen_size:
            lines.append(f"- Screen Size: Prefers {self.screen_size} screens")
        if self.usage:
            lines.append(f"- Primary Usage: {self.usage}")
        if self.mobility:
            lines.append(f"- Mobility Needs: {self.mobility}")
        return lines


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def _money(value: float) -> str:
    value = float(value)
    return f"${value:,.0f}" if value.is_integer() else f"${value:,.2f}"


def _num(value: Any) -> str:
    value = float(value)
    return f"{value:g}"


def format_product_details(products: Sequence[Mapping[str, Any]]) -> str:
    if not products:
        return "None."
    blocks = []
    for p in products:
        blocks.append(
            "\n".join(
                [
                    f"- Product Name: {p.get('name')}",
                    f"  - Category: {p.get('category')}",
                    f"  - Brand: {p.get('brand')}",
                    f"  - Price: {_money(p.get('price', 0))}",
                    f"  - Rating: {_num(p.get('rating', 0))}/5",
                    f"  - CPU: {p.get('cpu')}",
                    f"  - RAM: {_num(p.get('ram_gb', 0))}GB",
                    f"  - Storage: {_num(p.get('storage_gb', 0))}GB",
                    f"  - Screen: {_num(p.get('screen_inch', 0))}\"",
                    f"  - Weight: {_num(p.get('weight_kg', 0))}kg",
                    f"  - Battery: {_num(p.get('battery_wh', 0))}Wh",
                ]
            )
        )
    return "\n".join(blocks)


def build_comparison_prompt(group: ComparisonGroup, preferences: UserPreferenceHint) -> str:
    pref_block = ""
    winner_examples = ""
    if not preferences.is_empty():
        pref_block = (
            "\n# USER PREFERENCES\n"
            "The user has indicated the following preferences:\n"
            + "\n".join(preferences.directive_lines())
            + "\n\nIMPORTANT: Tailor your recommendations and analysis to these specific preferences!\n"
        )
        examples = []
        if preferences.budget:
            examples.append(f"        - **For Budget ({preferences.budget}):** The **[Product Name]** is the clear winner.")
        if preferences.usage:
            examples.append(
                f"        - **For {preferences.usage.capitalize()} use:** The **[Product Name]** is your best bet."
            )
        if examples:
            winner_examples = "    - Example:\n" + "\n".join(examples) + "\n"

    return f"""
# ROLE
You are a friendly and knowledgeable personal shopping assistant. Your goal is to help the user make a confident decision by comparing the products they've selected. Use clear, simple language.

# TASK
Provide a detailed comparison of the products in '[PRODUCTS_TO_COMPARE]'. Acknowledge any '[EXCLUDED_PRODUCTS]' and briefly explain why they aren't in the main comparison, without comparing them. Tailor your final recommendation to the '[USER_PREFERENCES]' when present.

# CONTEXT
[PRODUCTS_TO_COMPARE]
{format_product_details(group.comparable)}

[EXCLUDED_PRODUCTS]
{format_product_details(group.excluded)}
{pref_block}
# OUTPUT STRUCTURE & RULES
1.  **Exclusion Notice (If necessary):** If '[EXCLUDED_PRODUCTS]' is not "None.", start with a brief, friendly note that those products are in a different category.
2.  **Quick Glance Table:** A simple markdown table comparing Price, Rating, RAM, Storage and Screen.
3.  **### Who Wins for You?**
    - A bulleted list declaring a "winner" for each stated preference (or for value, performance and portability when none are stated).
{winner_examples}4.  **### Strengths & Weaknesses**
    - For each product, 2-3 bullet points on its main pros and cons.
5.  **### The Final Verdict**
    - A short "If you value... / Then choose... / Because..." table.
6.  **Tone:** Encouraging and helpful, like a friend guiding a friend. Keep the total response under 500 words.
"""


# ---------------------------------------------------------------------------
# Deterministic fallback
# ---------------------------------------------------------------------------

def _first_by(products: Sequence[Mapping[str, Any]], key: str, descending: bool) -> Mapping[str, Any]:
    # sorted() is stable: on equal values the earlier product wins
    if descending:
        return sorted(products, key=lambda p: -float(p.get(key) or 0))[0]
    return sorted(products, key=lambda p: float(p.get(key) or 0))[0]


def _preference_sentences(
    products: Sequence[Mapping[str, Any]],
    preferences: UserPreferenceHint,
    cheapest: Mapping[str, Any],
    top_rated: Mapping[str, Any],
    most_ram: Mapping[str, Any],
) -> list[str]:
    sentences = []
    if preferences.budget:
        sentences.append(
            f"For a {preferences.budget} budget, the {cheapest['name']} is the most affordable pick "
            f"at {_money(cheapest['price'])}."
        )

    if preferences.usage == "gaming":
        sentences.append(f"For gaming, the {most_ram['name']} has the most RAM ({_num(most_ram['ram_gb'])}GB).")
    elif preferences.usage == "creative":
        most_storage = _first_by(products, "storage_gb", descending=True)
        sentences.append(
            f"For creative work, the {most_storage['name']} offers the most storage "
            f"({_num(most_storage['storage_gb'])}GB)."
        )
    elif preferences.usage == "work":
        sentences.append(f"For work, the {top_rated['name']} is the highest rated ({_num(top_rated['rating'])}/5).")
    elif preferences.usage == "basic":
        sentences.append(f"For basic use, the {cheapest['name']} covers the essentials for the lowest price.")

    with_screen = [p for p in products if float(p.get("screen_inch") or 0) > 0]
    if preferences.screen_size and with_screen:
        ordered = sorted(with_screen, key=lambda p: float(p["screen_inch"]))
        if preferences.screen_size == "compact":
            pick, label = ordered[0], "smallest"
        elif preferences.screen_size == "large":
            pick = sorted(with_screen, key=lambda p: -float(p["screen_inch"]))[0]
            label = "largest"
        else:
            pick, label = ordered[(len(ordered) - 1) // 2], "most middle-of-the-road"
        sentences.append(
            f"For a {preferences.screen_size} screen, the {pick['name']} has the {label} display "
            f"({_num(pick['screen_inch'])}\")."
        )

    with_weight = [p for p in products if float(p.get("weight_kg") or 0) > 0]
    if preferences.mobility in ("portable", "ultraportable") and with_weight:
        lightest = _first_by(with_weight, "weight_kg", descending=False)
        article = "an" if preferences.mobility == "ultraportable" else "a"
        sentences.append(
            f"For {article} {preferences.mobility} setup, the {lightest['name']} is the lightest "
            f"({_num(lightest['weight_kg'])}kg)."
        )
    elif preferences.mobility == "desktop":
        sentences.append(
            f"Since it will stay on a desk, the {most_ram['name']} with the most RAM is the strongest option."
        )
    return sentences


def build_fallback_comparison(group: ComparisonGroup, preferences: UserPreferenceHint) -> str:
    """Cheapest / highest-rated / most-RAM summary plus one sentence per stated preference."""
    products = group.comparable
    if len(products) < MIN_COMPARE:
        return NOT_ENOUGH_COMPARABLE_MESSAGE

    cheapest = _first_by(products, "price", descending=False)
    top_rated = _first_by(products, "rating", descending=True)
    most_ram = _first_by(products, "ram_gb", descending=True)

    lines = [
        f"AI comparison is unavailable right now, so here is a quick summary of the "
        f"{len(products)} comparable products.",
        "",
        f"- Cheapest: {cheapest['name']} at {_money(cheapest['price'])}",
        f"- Highest rated: {top_rated['name']} ({_num(top_rated['rating'])}/5)",
        f"- Most RAM: {most_ram['name']} ({_num(most_ram['ram_gb'])}GB)",
    ]
    if group.excluded:
        names = ", ".join(str(p.get("name")) for p in group.excluded)
        lines += ["", f"Not compared (different category): {names}."]

    sentences = _preference_sentences(products, preferences, cheapest, top_rated, most_ram)
    if sentences:
        lines += ["", " ".join(sentences)]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Narrator
# ---------------------------------------------------------------------------

class NarratorState(str, Enum):
    ATTEMPT = "attempt"
    SUCCESS = "success"
    FALLBACK = "fallback"


@dataclass
class ComparisonNarrative:
    text: str
    model_used: str
    is_fallback: bool
    attempts: list[dict[str, Any]] = field(default_factory=list)


class ComparisonNarrator:
    """
    Attempt(model) -> Success | RateLimited -> Attempt(next model) | OtherError -> Fallback.
    Only one retry, only on rate limiting, always with the identical prompt.
    """

    max_attempts = 2

    def __init__(
        self,
        client: CompletionClient,
        models: Sequence[str],
        temperature: float = 0.4,
        max_tokens: int = 1024,
        recorder: InteractionRecorder = record_interaction,
    ) -> None:
        self.client = client
        self.models = list(models)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.recorder = recorder

    def narrate(
        self,
        group: ComparisonGroup,
        preferences: Optional[UserPreferenceHint] = None,
    ) -> ComparisonNarrative:
        preferences = preferences or UserPreferenceHint()
        if not group.is_comparable:
            return ComparisonNarrative(NOT_ENOUGH_COMPARABLE_MESSAGE, FALLBACK_MODEL_MARKER, True)

        prompt = build_comparison_prompt(group, preferences)
        attempts: list[dict[str, Any]] = []
        state = NarratorState.ATTEMPT if self.models else NarratorState.FALLBACK
        index = 0

        while state is NarratorState.ATTEMPT:
            model = self.models[index]
            try:
                text = self.client.complete(
                    prompt,
                    model=model,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ).strip()
            except RateLimitedError as e:
                attempts.append({"model": model, "outcome": "rate_limited"})
                self.recorder(prompt, as_log_text(e.to_payload()), model)
                index += 1
                can_retry = index < min(len(self.models), self.max_attempts)
                logger.warning(
                    "Comparison model %s rate limited%s",
                    model,
                    f"; retrying with {self.models[index]}" if can_retry else "",
                )
                state = NarratorState.ATTEMPT if can_retry else NarratorState.FALLBACK
                continue
            except CompletionUnavailableError:
                logger.info("Completion service not configured; using templated comparison")
                attempts.append({"model": model, "outcome": "unavailable"})
                state = NarratorState.FALLBACK
                continue
            except CompletionError as e:
                logger.warning("Comparison model %s failed: %s", model, e)
                attempts.append({"model": model, "outcome": "error"})
                self.recorder(prompt, as_log_text(e.to_payload()), model)
                state = NarratorState.FALLBACK
                continue
            except Exception as e:
                logger.exception("Unexpected error from comparison model %s", model)
                attempts.append({"model": model, "outcome": "error"})
                self.recorder(prompt, as_log_text({"error": str(e), "type": type(e).__name__}), model)
                state = NarratorState.FALLBACK
                continue

            if not text:
                attempts.append({"model": model, "outcome": "empty"})
                self.recorder(prompt, as_log_text({"error": "empty completion"}), model)
                state = NarratorState.FALLBACK
                continue

            attempts.append({"model": model, "outcome": "success"})
            self.recorder(prompt, text, model)
            return ComparisonNarrative(text=text, model_used=model, is_fallback=False, attempts=attempts)

        text = build_fallback_comparison(group, preferences)
        self.recorder(
            prompt,
            as_log_text({"fallback": True, "attempts": attempts, "comparison": text}),
            FALLBACK_MODEL_MARKER,
        )
        return ComparisonNarrative(text=text, model_used=FALLBACK_MODEL_MARKER, is_fallback=True, attempts=attempts)


_narrator: Optional[ComparisonNarrator] = None


def get_comparison_narrator() -> ComparisonNarrator:
    """FastAPI dependency: process-wide narrator over the configured model list."""
    global _narrator
    if _narrator is None:
        settings = get_settings()
        _narrator = ComparisonNarrator(
            client=OpenRouterClient.from_settings(settings),
            models=settings.compare_models_list(),
            temperature=settings.compare_temperature,
            max_tokens=settings.compare_max_tokens,
        )
    return _narrator
