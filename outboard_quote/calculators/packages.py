from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from ..logic.motor_codes import (
    can_add_external_fuel_tank,
    includes_propeller,
    is_manual_start,
    is_tiller_motor,
    requires_controls,
)
from ..logic.recommendation import recommend_package
from ..models import (
    Motor,
    MonthlyPayment,
    PackageOption,
    PolicyConfig,
    PricingWarning,
    QuoteInput,
    QuoteSelections,
    Recommendation,
    WarrantyPriceRow,
)
from ..utils import money, round_currency
from .financing import (
    calculate_monthly_payment,
    default_financing_rate,
    default_financing_term,
    financed_amount,
)
from .pricing import compute_totals
from .trade_in import effective_trade_in_value
from .warranty import current_coverage_years, quote_warranty_extension


def base_accessory_cost(motor: Motor, selections: QuoteSelections, policy: PolicyConfig) -> Decimal:
    """Rigging every tier carries: remote controls and installation labour."""
    add_ons = policy.add_ons
    controls = Decimal(0)
    if requires_controls(motor) and selections.controls_option:
        controls = add_ons.controls.get(selections.controls_option, Decimal(0))
    labor = Decimal(0)
    if not is_tiller_motor(motor.model) and selections.purchase_path != "loose":
        labor = add_ons.installation_labor
    tiller_install = selections.tiller_install_cost if is_tiller_motor(motor.model) else Decimal(0)
    return controls + labor + tiller_install


def tier_financing(
    principal: Decimal,
    selections: QuoteSelections,
    policy: PolicyConfig,
    promo_rate: Optional[Decimal] = None,
    promo_term: Optional[int] = None,
    promo_minimum: Optional[Decimal] = None,
) -> Tuple[MonthlyPayment, Optional[PricingWarning]]:
    """Monthly payment for one tier.

    The promotional rate and its term apply only when the amount financed
    meets the promotion's minimum; otherwise the standard rate applies.
    Without a term from the customer or the promotion the term follows the
    amount financed.
    """
    warning = None
    if promo_rate is not None and promo_minimum is not None and principal < promo_minimum:
        warning = PricingWarning(
            code="promo_minimum_not_met",
            message=(
                f"Special financing requires at least {money(promo_minimum, policy.currency_symbol)} "
                f"financed; standard rate applied"
            ),
            context={"financed_amount": str(round_currency(principal)), "minimum_amount": str(promo_minimum)},
        )
        promo_rate = None
        promo_term = None
    if promo_rate is not None:
        rate = promo_rate
    else:
        rate = default_financing_rate(principal, policy.financing)
    term = promo_term or selections.term_months or default_financing_term(principal, policy.financing)
    return calculate_monthly_payment(principal, rate, term_months=term), warning


def build_packages(
    motor: Motor,
    base_coverage_years: int,
    promo_bonus_years: int,
    selections: QuoteSelections,
    warranty_table: Sequence[WarrantyPriceRow],
    policy: Optional[PolicyConfig] = None,
    promo_value: Decimal = Decimal(0),
    promo_rate: Optional[Decimal] = None,
    recommendation: Optional[Recommendation] = None,
    promo_term: Optional[int] = None,
    promo_minimum: Optional[Decimal] = None,
) -> List[PackageOption]:
    """Price the Essential / Complete / Premium tiers for one motor.

    Each tier runs the totals aggregator once with its own add-ons and
    warranty extension, then a monthly payment on the financed amount.
    """
    policy = policy or PolicyConfig()
    add_ons = policy.add_ons
    warranty = policy.warranty
    current = current_coverage_years(base_coverage_years, promo_bonus_years, warranty.max_years)
    if recommendation is None:
        recommendation = recommend_package(selections.boat_type, motor.horsepower, selections.purchase_path)

    tiller = is_tiller_motor(motor.model)
    battery = Decimal(0) if is_manual_start(motor.model) else add_ons.battery
    propeller = Decimal(0) if includes_propeller(motor) else add_ons.propeller
    fuel_tank = add_ons.fuel_tank if can_add_external_fuel_tank(motor) else Decimal(0)
    shared = base_accessory_cost(motor, selections, policy) + selections.options_total
    trade_in_value = effective_trade_in_value(selections.trade_in)
    symbol = policy.currency_symbol

    complete_ext = quote_warranty_extension(
        motor.horsepower, current, warranty.complete_target_years, warranty_table
    )
    premium_ext = quote_warranty_extension(
        motor.horsepower, current, warranty.premium_target_years, warranty_table
    )

    def _extension_line(cost: Decimal, target: int) -> str:
        if cost > 0:
            return f"Warranty extension: {money(cost, symbol)}"
        return f"Already includes {target}yr coverage"

    def _coverage(ext) -> int:
        # A clamped extension only covers the years the bracket prices
        if ext.warning is not None and ext.warning.code == "warranty_years_unpriced":
            return max(current, ext.priced_through_year)
        return max(current, ext.target_years)

    complete_years = _coverage(complete_ext)
    premium_years = _coverage(premium_ext)

    tiers = [
        {
            "id": "good",
            "label": "Essential • Best Value",
            "extras": Decimal(0),
            "extension": None,
            "coverage": current,
            "features": [
                "Mercury motor",
                "Tiller-handle operation" if tiller else "Standard controls & rigging",
                f"{current} years coverage included",
                "DIY clamp-on mounting" if tiller and selections.tiller_install_cost == 0 else "Basic installation",
                "Customer supplies battery (if needed)",
            ],
        },
        {
            "id": "better",
            "label": "Complete • Extended Coverage",
            "extras": battery,
            "extension": complete_ext,
            "coverage": complete_years,
            "features": [
                "Everything in Essential",
                "Marine starting battery" if battery > 0 else None,
                f"Extended to {complete_years} years total coverage",
                _extension_line(complete_ext.cost, warranty.complete_target_years),
                "Priority installation",
            ],
        },
        {
            "id": "best",
            "label": "Premium • Max Coverage",
            "extras": battery + propeller + fuel_tank,
            "extension": premium_ext,
            "coverage": premium_years,
            "features": [
                "Everything in Complete",
                f"Maximum {premium_years} years total coverage",
                _extension_line(premium_ext.cost, warranty.premium_target_years),
                "Premium aluminum 3-blade propeller" if propeller > 0 else None,
                "12L external fuel tank & hose" if fuel_tank > 0 else None,
                "White-glove installation",
            ],
        },
    ]

    packages: List[PackageOption] = []
    for tier in tiers:
        ext = tier["extension"]
        warranty_cost = ext.cost if ext is not None else Decimal(0)
        pricing_input = QuoteInput(
            msrp=motor.msrp,
            dealer_discount=motor.dealer_discount,
            promo_value=promo_value,
            accessories_total=shared + tier["extras"],
            warranty_price=warranty_cost,
            trade_in_value=trade_in_value,
            admin_discount=selections.admin_discount,
            tax_rate=policy.tax_rate,
        )
        totals = compute_totals(pricing_input)
        principal = financed_amount(totals.subtotal, policy.tax_rate, policy.financing.dealerplan_fee)
        payment, financing_warning = tier_financing(
            principal, selections, policy, promo_rate, promo_term, promo_minimum
        )
        warnings = [ext.warning] if ext is not None and ext.warning else []
        if financing_warning:
            warnings.append(financing_warning)
        packages.append(
            PackageOption(
                id=tier["id"],
                label=tier["label"],
                price_before_tax=totals.subtotal,
                coverage_years=tier["coverage"],
                features=[f for f in tier["features"] if f],
                recommended=recommendation.package_id == tier["id"],
                recommendation_reason=recommendation.reason if recommendation.package_id == tier["id"] else None,
                warranty_cost=warranty_cost,
                pricing_input=pricing_input,
                totals=totals,
                monthly_payment=payment,
                warnings=warnings,
            )
        )
    return packages
