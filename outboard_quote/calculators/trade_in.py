from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from ..models import TradeInInfo, TradeInPolicy, TradeValueEstimate, TradeValueTable
from ..utils import round_currency, to_decimal


logger = logging.getLogger(__name__)

PENALTY_REASON_OUT_OF_BUSINESS = "brand_out_of_business"

# Fallback pricing when the value table has no row for the motor
VALUE_PER_HP = Decimal(40)
OLD_MOTOR_YEAR = 2005
OLD_MOTOR_CONDITION = {
    "excellent": Decimal("1.0"), "good": Decimal("0.8"), "fair": Decimal("0.6"), "poor": Decimal("0.35"),
}
GENERIC_CONDITION = {
    "excellent": Decimal("1.2"), "good": Decimal("1.0"), "fair": Decimal("0.75"), "poor": Decimal("0.45"),
}


def normalize_brand(brand: Optional[str]) -> str:
    return (brand or "").strip().upper()


def brand_penalty_factor(brand: Optional[str], penalties: Dict[str, Decimal]) -> Decimal:
    """Most severe factor among penalised brands named in `brand` (1 = no penalty)."""
    b = normalize_brand(brand)
    factor = Decimal(1)
    if not b:
        return factor
    for key, value in penalties.items():
        if key.upper() in b:
            factor = min(factor, to_decimal(value))
    return factor


def apply_brand_penalty(
    trade_in: TradeInInfo,
    penalties: Dict[str, Decimal],
    min_value: Decimal = Decimal(100),
) -> TradeInInfo:
    if not trade_in.has_trade_in:
        return trade_in
    factor = brand_penalty_factor(trade_in.brand, penalties)
    if factor >= 1:
        return trade_in
    adjusted = max(trade_in.estimated_value * factor, min_value)
    logger.info(
        "tradein_penalty_applied penalty_reason=%s brand=%s factor=%s original=%s adjusted=%s",
        PENALTY_REASON_OUT_OF_BUSINESS,
        normalize_brand(trade_in.brand),
        factor,
        trade_in.estimated_value,
        adjusted,
    )
    # Store the factor that maps the original estimate to the adjusted one
    effective = adjusted / trade_in.estimated_value if trade_in.estimated_value > 0 else Decimal(1)
    return trade_in.model_copy(
        update={"penalty_factor": min(effective, Decimal(1)), "penalty_reason": PENALTY_REASON_OUT_OF_BUSINESS}
    )


def effective_trade_in_value(trade_in: Optional[TradeInInfo]) -> Decimal:
    if trade_in is None or not trade_in.has_trade_in:
        return Decimal(0)
    factor = trade_in.penalty_factor if trade_in.penalty_factor is not None else Decimal(1)
    return trade_in.estimated_value * factor


def round_trade_value(low, high, min_value: Decimal = Decimal(100)) -> Decimal:
    """Median of a low/high estimate rounded to the nearest $25, floored at min_value."""
    median = (to_decimal(low) + to_decimal(high)) / Decimal(2)
    rounded = (median / Decimal(25)).quantize(Decimal(1), rounding=ROUND_HALF_UP) * Decimal(25)
    return max(rounded, min_value)


def year_range(year: int) -> Optional[str]:
    if year >= 2020:
        return "2020-2024"
    if year >= 2015:
        return "2015-2019"
    if year >= 2010:
        return "2010-2014"
    if year >= 2005:
        return "2005-2009"
    return None


def _table_for_brand(table: TradeValueTable, brand: Optional[str]) -> Optional[Dict]:
    b = normalize_brand(brand)
    for key, rows in table.items():
        if key.upper() == b:
            return rows
    return None


def estimate_trade_value(
    trade_in: TradeInInfo,
    table: Optional[TradeValueTable] = None,
    as_of_year: int = 2026,
    policy: Optional[TradeInPolicy] = None,
) -> TradeValueEstimate:
    """Estimated trade-in range for a used motor.

    Uses the brand/year/HP value table when it has a row for the motor,
    an age-based curve for motors older than 2005, and a per-HP generic
    estimate otherwise. Discontinued-brand penalties and the minimum value
    are applied to the range; `value` is its $25-rounded median and
    `pre_penalty_value` the same before the penalty.
    """
    policy = policy or TradeInPolicy()
    table = table or {}
    condition = trade_in.condition or "fair"
    hp = to_decimal(trade_in.horsepower)
    year = trade_in.year or 0
    age = max(as_of_year - year, 0)
    factors: List[str] = []

    rows = _table_for_brand(table, trade_in.brand)
    bucket = year_range(year)
    if rows is not None and year and year < OLD_MOTOR_YEAR:
        depreciation = max(Decimal("0.35"), Decimal(1) - Decimal(age - 20) * Decimal("0.03"))
        base = hp * VALUE_PER_HP * depreciation * OLD_MOTOR_CONDITION[condition]
        low, high = base * Decimal("0.8"), base * Decimal("1.2")
        confidence, source = "low", "Age-based estimate"
        factors.append(f"{age}-year-old motor")
    elif rows is not None and bucket in rows and rows[bucket]:
        by_hp = rows[bucket]
        closest = min(by_hp, key=lambda k: (abs(Decimal(k) - hp), k))
        base = to_decimal(by_hp[closest].get(condition, 0))
        if normalize_brand(trade_in.brand) == "MERCURY" and year >= 2020:
            base *= Decimal("1.1")
            factors.append("Mercury brand premium")
        low, high = base * Decimal("0.85"), base * Decimal("1.15")
        confidence = "high"
        if abs(Decimal(closest) - hp) > 15:
            confidence = "medium"
            factors.append(f"Priced from nearest listed size ({closest} HP)")
        if year < 2015:
            confidence = "low"
        source = "Market value table"
    else:
        depreciation = max(Decimal("0.3"), Decimal(1) - Decimal(age) * Decimal("0.1"))
        base = hp * VALUE_PER_HP * depreciation * GENERIC_CONDITION[condition]
        low, high = base * Decimal("0.85"), base * Decimal("1.15")
        confidence, source = "low", "Generic estimate"
        factors.append("Brand or year not in value table")
    factors.append(f"Condition: {condition}")

    pre_penalty_value = round_trade_value(low, high, policy.min_value)
    factor = brand_penalty_factor(trade_in.brand, policy.brand_penalties)
    if factor < 1:
        factors.append("Brand discontinued, value reduced")
    low = max(low * factor, policy.min_value)
    high = max(high * factor, policy.min_value)
    return TradeValueEstimate(
        low=round_currency(low),
        high=round_currency(high),
        value=round_trade_value(low, high, policy.min_value),
        pre_penalty_value=pre_penalty_value,
        confidence=confidence,
        source=source,
        factors=factors,
        penalty_factor=factor,
    )


def fill_trade_in_estimate(
    trade_in: TradeInInfo,
    table: Optional[TradeValueTable] = None,
    as_of_year: int = 2026,
    policy: Optional[TradeInPolicy] = None,
) -> TradeInInfo:
    """Estimate the trade value when the customer has a trade but no figure for it.

    The stored estimate is the pre-penalty value so that `apply_brand_penalty`
    applies a discontinued-brand factor exactly once.
    """
    if not trade_in.has_trade_in or trade_in.estimated_value > 0:
        return trade_in
    if not trade_in.year or not trade_in.horsepower:
        return trade_in
    estimate = estimate_trade_value(trade_in, table, as_of_year, policy)
    logger.info(
        "tradein_estimated brand=%s year=%s hp=%s condition=%s value=%s source=%s",
        normalize_brand(trade_in.brand),
        trade_in.year,
        trade_in.horsepower,
        trade_in.condition or "fair",
        estimate.pre_penalty_value,
        estimate.source,
    )
    return trade_in.model_copy(update={"estimated_value": estimate.pre_penalty_value})
