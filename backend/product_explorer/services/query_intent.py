"""
Query intent resolution: free-text search -> partial FilterRecord via the hosted model.

Never raises. Missing credentials, spent budget, upstream failure or unusable
model output all degrade to "no structural filters", so the search still runs
(as a plain text search on the original query).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from product_explorer.core.config import get_settings
from product_explorer.services.call_budget import CallBudget
from product_explorer.services.completion import (
    CompletionClient,
    CompletionError,
    CompletionUnavailableError,
    OpenRouterClient,
)
from product_explorer.services.filters import clean_structural_filters
from product_explorer.services.interaction_log import (
    InteractionRecorder,
    as_log_text,
    record_interaction,
)

logger = logging.getLogger(__name__)

PARSE_PROMPT_TEMPLATE = """
You are a sophisticated AI assistant for an electronics store. Your only job is to parse a user's natural language query into a structured JSON object.

# Query
"{query}"

# Guiding Principles
1.  **NEVER Guess Values:** Do not invent numbers for specs like RAM or storage. If the user gives no number, leave the field out.
2.  **NEVER Include null/undefined:** Only include fields that have actual values.
3.  **Handle Typos:** Recognize common typos like "bugget" = "budget", "cheep" = "cheap", "fone" = "phone".
4.  **Translate Relative Terms to Sorting:** Turn words like "best", "cheapest", "fastest", "most", "highest", "budget" into sorting instructions.
5.  **Infer Brand and Category Aliases:** "iphone", "macbook" -> brand "Apple"; "notebook" -> category "laptop".
6.  **Leftovers Go to search:** Words naming a specific model or feature that no other field covers (e.g. "pro", "m3", "oled") go into "search". Leave "search" out when everything maps to other fields.
7.  **Be Strict:** If the query does not relate to products, return an empty JSON object: {{}}.

# JSON Output Structure
Return ONLY a valid JSON object with these optional fields:
- category: one of "phone", "tablet", "laptop", "desktop"
- brands: array of brand names (e.g. ["Apple", "Samsung"])
- minPrice: number
- maxPrice: number
- minRam: number (in GB)
- minStorage: number (in GB)
- sortBy: one of "price", "rating", "ram_gb", "storage_gb", "name"
- sortDirection: "asc" (cheapest/lowest) or "desc" (best/highest)
- search: string

# Examples
- "laptops under $1000" -> {{"category": "laptop", "maxPrice": 1000}}
- "samsung phones with 12gb ram" -> {{"category": "phone", "brands": ["Samsung"], "minRam": 12}}
- "cheapest dell laptop" -> {{"category": "laptop", "brands": ["Dell"], "sortBy": "price", "sortDirection": "asc"}}
- "budget laptop" -> {{"category": "laptop", "sortBy": "price", "sortDirection": "asc"}}
- "iphone with the most storage" -> {{"category": "phone", "brands": ["Apple"], "sortBy": "storage_gb", "sortDirection": "desc"}}
- "macbook pro m3" -> {{"category": "laptop", "brands": ["Apple"], "search": "pro m3"}}
- "show me all tablets" -> {{"category": "tablet"}}
- "what's the weather like?" -> {{}}

Parse the user's query according to these rules and return only the JSON object.
"""


def _balanced_object_end(text: str, start: int) -> Optional[int]:
    """Index just past the brace closing text[start], skipping braces inside JSON strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """
    First brace-delimited JSON object in free-form model text, or None.

    Tries the balanced object starting at the first "{" (so trailing prose or a
    second object is ignored), then the greedy first-"{"-to-last-"}" span.
    Anything that does not decode to a JSON object yields None. Never raises.
    """
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None

    candidates = []
    end = _balanced_object_end(text, start)
    if end is not None:
        candidates.append(text[start:end])
    last = text.rfind("}")
    if last > start:
        greedy = text[start : last + 1]
        if greedy not in candidates:
            candidates.append(greedy)

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None


@dataclass
class ParsedQuery:
    original_query: str
    filters: dict[str, Any] = field(default_factory=dict)
    search_term: Optional[str] = None
    # "model" when the filters came from a model response, else "fallback"
    source: str = "fallback"

    def to_response(self) -> dict[str, Any]:
        return {
            "originalQuery": self.original_query,
            "parsedFilters": dict(self.filters),
            "searchTerm": self.search_term,
        }


def _leftover_search(candidate: dict[str, Any]) -> Optional[str]:
    value = candidate.get("search")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class QueryIntentResolver:
    """Free text -> structural filters + text-search term, via one model call."""

    def __init__(
        self,
        client: CompletionClient,
        budget: CallBudget,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 200,
        recorder: InteractionRecorder = record_interaction,
    ) -> None:
        self.client = client
        self.budget = budget
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.recorder = recorder

    def build_prompt(self, query: str) -> str:
        return PARSE_PROMPT_TEMPLATE.format(query=query)

    def _fallback(self, query: str) -> ParsedQuery:
        return ParsedQuery(original_query=query, filters={}, search_term=query or None)

    def resolve(self, query: str, identity: str = "anonymous") -> ParsedQuery:
        query = (query or "").strip()
        if not query:
            return self._fallback(query)

        if not self.budget.try_acquire(identity):
            logger.warning("AI call budget exhausted for %s; using plain text search", identity)
            return self._fallback(query)

        prompt = self.build_prompt(query)
        try:
            raw = self.client.complete(
                prompt,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except CompletionUnavailableError:
            self.budget.refund(identity)
            logger.info("Completion service not configured; using plain text search")
            return self._fallback(query)
        except CompletionError as e:
            logger.warning("Query parse failed (model=%s): %s", self.model, e)
            self.recorder(prompt, as_log_text({"originalQuery": query, **e.to_payload()}), self.model)
            return self._fallback(query)
        except Exception as e:
            logger.exception("Unexpected error while parsing query")
            self.recorder(prompt, as_log_text({"originalQuery": query, "error": str(e)}), self.model)
            return self._fallback(query)

        candidate = extract_json_object(raw)
        if candidate is None:
            logger.warning("Model output had no JSON object; ignoring it")
            candidate = {}
        filters = clean_structural_filters(candidate)

        if filters:
            # Structure already covers the query; only leftovers are text-searched
            search_term = _leftover_search(candidate)
        else:
            search_term = query

        result = ParsedQuery(
            original_query=query,
            filters=filters,
            search_term=search_term,
            source="model" if candidate else "fallback",
        )
        self.recorder(
            prompt,
            as_log_text({"originalQuery": query, "parsedFilters": filters, "aiContent": raw}),
            self.model,
        )
        return result


_budget: Optional[CallBudget] = None
_resolver: Optional[QueryIntentResolver] = None


def get_call_budget() -> CallBudget:
    global _budget
    if _budget is None:
        _budget = CallBudget(limit=get_settings().ai_daily_call_limit)
    return _budget


def get_query_resolver() -> QueryIntentResolver:
    """FastAPI dependency: process-wide resolver sharing one call budget."""
    global _resolver
    if _resolver is None:
        settings = get_settings()
        _resolver = QueryIntentResolver(
            client=OpenRouterClient.from_settings(settings),
            budget=get_call_budget(),
            model=settings.parse_query_model,
            temperature=settings.parse_query_temperature,
            max_tokens=settings.parse_query_max_tokens,
        )
    return _resolver
