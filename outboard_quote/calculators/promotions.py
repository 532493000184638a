from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from ..models import (
    BonusKind,
    BonusSelection,
    CashRebateOption,
    Motor,
    NoPaymentsOption,
    PricingWarning,
    PromotionMatch,
    PromotionRule,
    SpecialFinancingOption,
)


def _norm(s: str) -> str:
    return " ".join((s or "").lower().split())


def is_rule_active(rule: PromotionRule, as_of: date) -> bool:
    if not rule.is_active:
        return False
    if rule.start_date is not None and as_of < rule.start_date:
        return False
    if rule.end_date is not None and as_of > rule.end_date:
        return False
    return True


def rule_matches_motor(rule: PromotionRule, motor: Motor) -> bool:
    """All condition fields present on the rule must hold (logical AND).

    model: case-insensitive substring of the motor model, whitespace collapsed.
    motor_type: case-insensitive equality.
    """
    hp = motor.horsepower
    if rule.horsepower_min is not None and hp < rule.horsepower_min:
        return False
    if rule.horsepower_max is not None and hp > rule.horsepower_max:
        return False
    if rule.model:
        if _norm(rule.model) not in _norm(motor.model):
            return False
    if rule.motor_type:
        if _norm(rule.motor_type) != _norm(motor.motor_type):
            return False
    return True


def _precedence(indexed: Tuple[int, PromotionRule]):
    idx, rule = indexed
    created = rule.created_at
    # highest priority first, then earliest created, then input order
    return (-rule.priority, created is None, created.timestamp() if created else 0.0, idx)


def rule_discount(rule: PromotionRule, msrp: Decimal) -> Decimal:
    return rule.discount_percentage / Decimal(100) * msrp + rule.discount_fixed_amount


def match_rules(motor: Motor, rules: Sequence[PromotionRule], as_of: date) -> PromotionMatch:
    """Select the promotions that apply to a motor on a given date.

    One non-stackable rule wins by priority (ties: earliest created_at, then
    list position); every matching stackable rule is added on top. Discounts
    are always taken against the original MSRP, never compounded.
    """
    candidates = [
        (idx, r) for idx, r in enumerate(rules) if is_rule_active(r, as_of) and rule_matches_motor(r, motor)
    ]
    exclusive = sorted((c for c in candidates if not c[1].stackable), key=_precedence)
    stackable = [r for _, r in sorted((c for c in candidates if c[1].stackable), key=_precedence)]

    winner: Optional[PromotionRule] = exclusive[0][1] if exclusive else None
    applied: List[PromotionRule] = ([winner] if winner else []) + stackable

    total = sum((rule_discount(r, motor.msrp) for r in applied), Decimal(0))
    bonus_years = sum(r.warranty_extra_years for r in applied)
    # choose-one bonuses: winner first, else the first stackable rule
    source = winner or (stackable[0] if stackable else None)

    return PromotionMatch(
        applied_rules=applied,
        winning_rule=winner,
        total_discount=total,
        total_warranty_bonus_years=bonus_years,
        bonus_options=list(source.bonus_options) if source else [],
    )


def rebate_for_horsepower(option: CashRebateOption, horsepower: Decimal) -> Decimal:
    for tier in option.matrix:
        if tier.hp_min <= horsepower <= tier.hp_max:
            return tier.rebate
    return Decimal(0)


def apply_bonus_choice(
    match: PromotionMatch,
    choice: Optional[BonusKind],
    motor: Motor,
    term_months: Optional[int] = None,
) -> Tuple[BonusSelection, Optional[PricingWarning]]:
    """Resolve the customer's "choose one" bonus against what the promotion offers."""
    if choice is None:
        return BonusSelection(), None
    option = next((o for o in match.bonus_options if o.kind == choice), None)
    if option is None:
        return BonusSelection(), PricingWarning(
            code="bonus_option_unavailable",
            message=f"Bonus option '{choice}' is not offered for this motor",
            context={"model": motor.model, "choice": choice},
        )

    if isinstance(option, CashRebateOption):
        rebate = rebate_for_horsepower(option, motor.horsepower)
        warning = None
        if rebate == 0:
            warning = PricingWarning(
                code="rebate_bracket_missing",
                message="No rebate tier covers this horsepower",
                context={"horsepower": str(motor.horsepower)},
            )
        return BonusSelection(kind=choice, cash_rebate=rebate), warning

    if isinstance(option, SpecialFinancingOption):
        if not option.rates:
            return BonusSelection(kind=choice), None
        chosen = option.rates[0]
        warning = None
        if term_months is not None:
            listed = next((r for r in option.rates if r.months == term_months), None)
            if listed is not None:
                chosen = listed
            else:
                warning = PricingWarning(
                    code="promo_term_unavailable",
                    message=(
                        f"Special financing is not offered over {term_months} months; "
                        f"using {chosen.months} months at {chosen.rate}%"
                    ),
                    context={
                        "requested_term_months": term_months,
                        "term_months": chosen.months,
                        "offered_terms": [r.months for r in option.rates],
                    },
                )
        selection = BonusSelection(
            kind=choice,
            promo_rate=chosen.rate,
            term_months=chosen.months,
            minimum_amount=option.minimum_amount,
        )
        return selection, warning

    if isinstance(option, NoPaymentsOption):
        return BonusSelection(kind=choice, deferral_months=option.deferral_months), None

    return BonusSelection(), None
