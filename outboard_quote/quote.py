from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from .calculators.packages import build_packages
from .calculators.pricing import compute_totals
from .calculators.promotions import apply_bonus_choice, match_rules
from .calculators.trade_in import apply_brand_penalty, fill_trade_in_estimate
from .calculators.warranty import build_warranty_config, current_coverage_years
from .logic.recommendation import recommend_package
from .models import (
    BonusSelection,
    Motor,
    MonthlyPayment,
    PackageId,
    PackageOption,
    PolicyConfig,
    PricingWarning,
    PromotionMatch,
    PromotionRule,
    QuoteInput,
    QuoteSelections,
    QuoteTotals,
    Recommendation,
    RecommendationConfig,
    TradeValueTable,
    WarrantyConfig,
    WarrantyPriceRow,
)


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class QuoteSnapshot(BaseModel):
    """The `quote_data` blob persisted when a quote is saved."""

    version: int = SNAPSHOT_VERSION
    as_of: date
    motor: Motor
    selections: QuoteSelections
    package_id: PackageId
    applied_promotions: List[str] = Field(default_factory=list)
    bonus: BonusSelection = Field(default_factory=BonusSelection)
    warranty: WarrantyConfig
    pricing_input: QuoteInput
    totals: QuoteTotals
    financing: MonthlyPayment


class Quote(BaseModel):
    as_of: date
    motor: Motor
    selections: QuoteSelections
    promotion: PromotionMatch
    bonus: BonusSelection
    current_coverage_years: int
    recommendation: Recommendation
    packages: List[PackageOption]
    selected_package_id: PackageId
    warranty: WarrantyConfig
    pricing_input: QuoteInput
    totals: QuoteTotals
    financing: MonthlyPayment
    warnings: List[PricingWarning] = Field(default_factory=list)

    @property
    def selected_package(self) -> PackageOption:
        return next(p for p in self.packages if p.id == self.selected_package_id)

    def snapshot(self) -> QuoteSnapshot:
        return QuoteSnapshot(
            as_of=self.as_of,
            motor=self.motor,
            selections=self.selections,
            package_id=self.selected_package_id,
            applied_promotions=[r.name or (r.id or "") for r in self.promotion.applied_rules],
            bonus=self.bonus,
            warranty=self.warranty,
            pricing_input=self.pricing_input,
            totals=self.totals,
            financing=self.financing,
        )


def build_quote(
    motor: Motor,
    rules: Sequence[PromotionRule],
    warranty_table: Sequence[WarrantyPriceRow],
    selections: Optional[QuoteSelections] = None,
    policy: Optional[PolicyConfig] = None,
    as_of: Optional[date] = None,
    recommendations: Optional[RecommendationConfig] = None,
    trade_values: Optional[TradeValueTable] = None,
) -> Quote:
    """Run the full pricing flow for one motor and one set of customer choices."""
    selections = selections or QuoteSelections()
    policy = policy or PolicyConfig()
    as_of = as_of or date.today()
    warnings: List[PricingWarning] = []

    trade_in = fill_trade_in_estimate(selections.trade_in, trade_values, as_of.year, policy.trade_in)
    trade_in = apply_brand_penalty(trade_in, policy.trade_in.brand_penalties, policy.trade_in.min_value)
    selections = selections.model_copy(update={"trade_in": trade_in})

    match = match_rules(motor, rules, as_of)
    bonus, bonus_warning = apply_bonus_choice(match, selections.bonus_choice, motor, selections.term_months)
    if bonus_warning:
        warnings.append(bonus_warning)
    promo_value = match.total_discount + bonus.cash_rebate

    current = current_coverage_years(
        policy.warranty.base_years, match.total_warranty_bonus_years, policy.warranty.max_years
    )
    recommendation = recommend_package(
        selections.boat_type, motor.horsepower, selections.purchase_path, recommendations
    )
    packages = build_packages(
        motor,
        policy.warranty.base_years,
        match.total_warranty_bonus_years,
        selections,
        warranty_table,
        policy=policy,
        promo_value=promo_value,
        promo_rate=bonus.promo_rate,
        recommendation=recommendation,
        promo_term=bonus.term_months,
        promo_minimum=bonus.minimum_amount,
    )
    selected_id = selections.package_id or recommendation.package_id
    selected = next(p for p in packages if p.id == selected_id)
    promo_financed = bonus.term_months and all(w.code != "promo_minimum_not_met" for w in selected.warnings)
    if promo_financed:
        # The promotional rate is only offered over its own term
        selections = selections.model_copy(update={"term_months": bonus.term_months})
    for pkg in packages:
        for w in pkg.warnings:
            if w not in warnings:
                warnings.append(w)

    warranty = build_warranty_config(
        policy.warranty.base_years,
        match.total_warranty_bonus_years,
        selected.coverage_years,
        selected.warranty_cost,
        policy.warranty.max_years,
    )
    for w in warnings:
        logger.warning("pricing data gap code=%s model=%s detail=%s", w.code, motor.model, w.message)

    return Quote(
        as_of=as_of,
        motor=motor,
        selections=selections,
        promotion=match,
        bonus=bonus,
        current_coverage_years=current,
        recommendation=recommendation,
        packages=packages,
        selected_package_id=selected_id,
        warranty=warranty,
        pricing_input=selected.pricing_input,
        totals=selected.totals,
        financing=selected.monthly_payment,
        warnings=warnings,
    )


def recompute_totals(snapshot: QuoteSnapshot) -> QuoteTotals:
    return compute_totals(snapshot.pricing_input)
