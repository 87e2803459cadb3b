"""Attribute scorer: per-attribute winner/loser tags and win tallies for 2-4 products."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from product_explorer.core.errors import ValidationError

WINNER = "winner"
LOSER = "loser"


@dataclass(frozen=True)
class ScoredAttribute:
    key: str
    label: str
    unit: str
    higher_is_better: bool


ATTRIBUTES: tuple[ScoredAttribute, ...] = (
    ScoredAttribute("price", "Price", "$", higher_is_better=False),
    ScoredAttribute("rating", "Rating", "/5", higher_is_better=True),
    ScoredAttribute("ram_gb", "RAM", "GB", higher_is_better=True),
    ScoredAttribute("storage_gb", "Storage", "GB", higher_is_better=True),
    ScoredAttribute("screen_inch", "Screen Size", "\"", higher_is_better=True),
    ScoredAttribute("battery_wh", "Battery", "Wh", higher_is_better=True),
    ScoredAttribute("weight_kg", "Weight", "kg", higher_is_better=False),
)
ATTRIBUTES_BY_KEY = {a.key: a for a in ATTRIBUTES}
DEFAULT_ATTRIBUTES = tuple(a.key for a in ATTRIBUTES[:5])


@dataclass
class ScoreResult:
    attributes: list[str]
    tags: dict[str, dict[str, str]] = field(default_factory=dict)
    wins: dict[str, int] = field(default_factory=dict)
    recommended: list[str] = field(default_factory=list)

    @property
    def win_shares(self) -> dict[str, float]:
        """Fraction of all wins held by each product (zeros when nobody won)."""
        total = sum(self.wins.values())
        if total == 0:
            return {pid: 0.0 for pid in self.wins}
        return {pid: count / total for pid, count in self.wins.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "attributes": [
                {
                    "key": key,
                    "label": ATTRIBUTES_BY_KEY[key].label,
                    "unit": ATTRIBUTES_BY_KEY[key].unit,
                    "higherIsBetter": ATTRIBUTES_BY_KEY[key].higher_is_better,
                }
                for key in self.attributes
            ],
            "tags": self.tags,
            "wins": self.wins,
            "winShares": self.win_shares,
            "recommended": self.recommended,
        }


def _value(product: Mapping[str, Any], key: str) -> Optional[float]:
    value = product.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def score_products(
    products: Sequence[Mapping[str, Any]],
    attributes: Optional[Sequence[str]] = None,
) -> ScoreResult:
    """
    Tag every product winner/loser per selected attribute and count wins.
    Ties are not broken: all products at the extreme value win. The overall
    recommendation is every product holding the highest win count.
    Input order does not affect any tag or count.
    """
    if not 2 <= len(products) <= 4:
        raise ValidationError("productIds", "between 2 and 4 products are required")

    selected = list(dict.fromkeys(attributes)) if attributes else list(DEFAULT_ATTRIBUTES)
    for key in selected:
        if key not in ATTRIBUTES_BY_KEY:
            raise ValidationError("attributes", f"unknown attribute '{key}'")

    ids = [str(p["id"]) for p in products]
    result = ScoreResult(
        attributes=selected,
        tags={pid: {} for pid in ids},
        wins={pid: 0 for pid in ids},
    )

    for key in selected:
        spec = ATTRIBUTES_BY_KEY[key]
        values = {pid: _value(p, key) for pid, p in zip(ids, products)}
        present = [v for v in values.values() if v is not None]
        best = (max(present) if spec.higher_is_better else min(present)) if present else None
        for pid, value in values.items():
            if best is not None and value == best:
                result.tags[pid][key] = WINNER
                result.wins[pid] += 1
            else:
                result.tags[pid][key] = LOSER

    top = max(result.wins.values())
    result.recommended = [pid for pid in ids if result.wins[pid] == top] if top > 0 else []
    return result
