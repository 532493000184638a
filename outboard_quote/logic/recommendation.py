from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from ..models import Recommendation, RecommendationConfig, RecommendationRule
from ..utils import to_decimal


TIER_RANK = {"good": 0, "better": 1, "best": 2}

INSUFFICIENT_INFORMATION = "insufficient information"

DEFAULT_BOAT_CATEGORIES: Dict[str, List[str]] = {
    "casual": ["ultralite", "canoe", "inflatable", "kayak", "dinghy"],
    "light": ["utility", "jon-boat", "tender"],
    "family": ["pontoon", "bowrider", "deck-boat", "tritoon"],
    "fishing": ["v-hull-fishing", "aluminum-fishing", "walleye"],
    "performance": ["center-console", "speed-boat", "bass-boat", "sport-boat", "offshore", "bay-boat"],
}

DEFAULT_RULES: List[RecommendationRule] = [
    RecommendationRule(
        package_id="best", min_hp=Decimal(200),
        reason="Maximum protection for your {hp}HP investment", badge="Best for {hp}HP motors",
    ),
    RecommendationRule(
        package_id="best", min_hp=Decimal(150),
        reason="Extended coverage for high-performance motors", badge="Recommended for {hp}HP",
    ),
    RecommendationRule(
        package_id="best", categories=["performance"],
        reason="Max coverage for offshore & tournament use", badge="Best for {boat}s",
    ),
    RecommendationRule(
        package_id="best", categories=["fishing"], min_hp=Decimal(90),
        reason="Full protection for serious fishing trips", badge="Popular with anglers",
    ),
    RecommendationRule(
        package_id="better", categories=["fishing"],
        reason="Great coverage for fishing boats", badge="Best for fishing",
    ),
    RecommendationRule(
        package_id="better", categories=["family"],
        reason="Most popular with {boat} owners", badge="#1 for families",
    ),
    RecommendationRule(
        package_id="better", min_hp=Decimal(40),
        reason="Smart protection for mid-range motors", badge="Best value",
    ),
    RecommendationRule(
        package_id="good", categories=["light"],
        reason="Perfect for light-duty use", badge="Great for utility boats",
    ),
    RecommendationRule(
        package_id="good", categories=["casual"],
        reason="Ideal for casual boating", badge="Perfect fit",
    ),
    RecommendationRule(
        package_id="good", max_hp=Decimal(25),
        reason="Ideal for casual boating", badge="Perfect fit",
    ),
]


def default_config() -> RecommendationConfig:
    return RecommendationConfig(boat_categories=DEFAULT_BOAT_CATEGORIES, rules=DEFAULT_RULES)


def boat_category(boat_type: Optional[str], categories: Dict[str, List[str]]) -> Optional[str]:
    if not boat_type:
        return None
    normalized = "-".join(boat_type.lower().split())
    for category, types in categories.items():
        if any(t in normalized for t in types):
            return category
    return None


def _rule_matches(
    rule: RecommendationRule, category: str, hp: Decimal, purchase_path: Optional[str]
) -> bool:
    if rule.categories is not None and category not in rule.categories:
        return False
    if rule.min_hp is not None and hp < rule.min_hp:
        return False
    if rule.max_hp is not None and hp >= rule.max_hp:
        return False
    if rule.purchase_paths is not None and purchase_path not in rule.purchase_paths:
        return False
    return True


def _format_hp(hp: Decimal) -> str:
    return format(hp.normalize(), "f") if hp == hp.to_integral_value() else str(hp)


def recommend_package(
    boat_type: Optional[str],
    horsepower,
    purchase_path: Optional[str] = None,
    config: Optional[RecommendationConfig] = None,
) -> Recommendation:
    """Pick one package tier for a boat type / HP combination.

    Every matching rule is collected and the highest tier wins
    (best > better > good); within a tier the first rule in table order
    supplies the wording.
    """
    config = config or default_config()
    hp = to_decimal(horsepower) if horsepower is not None else Decimal(0)
    category = boat_category(boat_type, config.boat_categories)
    if hp <= 0 or category is None:
        return Recommendation(package_id="good", reason=INSUFFICIENT_INFORMATION, badge="")

    matched = [r for r in config.rules if _rule_matches(r, category, hp, purchase_path)]
    if not matched:
        return config.fallback

    best_rank = max(TIER_RANK[r.package_id] for r in matched)
    rule = next(r for r in matched if TIER_RANK[r.package_id] == best_rank)
    fmt = {"hp": _format_hp(hp), "boat": boat_type.replace("-", " ")}
    return Recommendation(
        package_id=rule.package_id,
        reason=rule.reason.format(**fmt),
        badge=rule.badge.format(**fmt),
    )
