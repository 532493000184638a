from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest

from outboard_quote.models import Motor, PromotionRule, QuoteSelections, TradeInInfo
from outboard_quote.quote import QuoteSnapshot, build_quote, recompute_totals


AS_OF = date(2026, 5, 1)


@pytest.fixture
def rules():
    return [
        PromotionRule(
            id="get-7",
            name="Mercury Get 7",
            priority=10,
            warranty_extra_years=4,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31),
            bonus_options=[
                {"kind": "special_financing", "rates": [{"months": 36, "rate": "3.99"}]},
                {"kind": "cash_rebate", "matrix": [{"hp_min": 75, "hp_max": 150, "rebate": 500}]},
            ],
        )
    ]


def _selections(**kw):
    data = {"boat_type": "pontoon", "purchase_path": "installed", "controls_option": "compatible"}
    data.update(kw)
    return QuoteSelections(**data)


def test_recommended_package_is_selected(motor_115, rules, warranty_table):
    q = build_quote(motor_115, rules, warranty_table, _selections(), as_of=AS_OF)
    assert q.selected_package_id == "better"
    assert q.current_coverage_years == 7
    assert q.warranty.total_years == 7
    assert q.warranty.extended_years == 0
    # 10000 - 500 + 450 labour + 179.99 battery
    assert q.totals.subtotal == Decimal("10129.99")
    assert q.totals == q.selected_package.totals


def test_cash_rebate_counts_as_promo(motor_115, rules, warranty_table):
    q = build_quote(motor_115, rules, warranty_table, _selections(bonus_choice="cash_rebate"), as_of=AS_OF)
    assert q.bonus.cash_rebate == Decimal(500)
    assert q.totals.subtotal == Decimal("9629.99")
    assert q.totals.savings == Decimal(1000)


def test_special_financing_sets_rate_and_term(motor_115, rules, warranty_table):
    q = build_quote(motor_115, rules, warranty_table, _selections(bonus_choice="special_financing"), as_of=AS_OF)
    assert q.selections.term_months == 36
    assert q.financing.rate == Decimal("3.99")
    assert q.financing.term_months == 36


def test_unlisted_term_uses_promo_term_and_warns(motor_115, rules, warranty_table):
    sel = _selections(bonus_choice="special_financing", term_months=120)
    q = build_quote(motor_115, rules, warranty_table, sel, as_of=AS_OF)
    assert q.bonus.term_months == 36
    assert q.financing.rate == Decimal("3.99")
    assert q.financing.term_months == 36
    assert q.selections.term_months == 36
    assert "promo_term_unavailable" in [w.code for w in q.warnings]


def test_special_financing_below_minimum_uses_standard_rate(tiller_motor, warranty_table):
    rule = PromotionRule(
        id="get-7",
        warranty_extra_years=4,
        bonus_options=[
            {"kind": "special_financing", "rates": [{"months": 24, "rate": "2.99"}], "minimum_amount": 5000},
        ],
    )
    q = build_quote(tiller_motor, [rule], warranty_table, _selections(bonus_choice="special_financing"), as_of=AS_OF)
    # about $4,253 financed on a $3,499 tiller
    assert q.bonus.minimum_amount == Decimal(5000)
    assert q.financing.rate == Decimal("8.99")
    assert q.financing.term_months == 36
    assert q.selections.term_months is None
    assert "promo_minimum_not_met" in [w.code for w in q.warnings]


def test_explicit_package_choice(motor_115, rules, warranty_table):
    q = build_quote(motor_115, rules, warranty_table, _selections(package_id="best"), as_of=AS_OF)
    assert q.selected_package_id == "best"
    assert q.warranty.total_years == 8
    assert q.warranty.warranty_price == Decimal(399)


def test_promotion_outside_window(motor_115, rules, warranty_table):
    q = build_quote(motor_115, rules, warranty_table, _selections(), as_of=date(2027, 2, 1))
    assert q.promotion.applied_rules == []
    assert q.current_coverage_years == 3


def test_discontinued_trade_in_brand(motor_115, rules, warranty_table):
    sel = _selections(trade_in=TradeInInfo(has_trade_in=True, estimated_value=2000, brand="Evinrude"))
    q = build_quote(motor_115, rules, warranty_table, sel, as_of=AS_OF)
    assert q.pricing_input.trade_in_value == Decimal(1000)
    assert q.selections.trade_in.penalty_reason == "brand_out_of_business"


def test_trade_in_estimated_when_no_value_given(motor_115, rules, warranty_table):
    trade = TradeInInfo(has_trade_in=True, brand="Evinrude", year=2015, horsepower=40, condition="good")
    q = build_quote(motor_115, rules, warranty_table, _selections(trade_in=trade), as_of=AS_OF, trade_values={})
    # generic 40 HP estimate of $475, halved once for the discontinued brand
    assert q.selections.trade_in.estimated_value == Decimal(475)
    assert q.pricing_input.trade_in_value == Decimal("237.5")


def test_given_trade_in_value_is_not_re_estimated(motor_115, rules, warranty_table):
    trade = TradeInInfo(has_trade_in=True, estimated_value=3000, brand="Yamaha", year=2021, horsepower=40)
    q = build_quote(motor_115, rules, warranty_table, _selections(trade_in=trade), as_of=AS_OF)
    assert q.pricing_input.trade_in_value == Decimal(3000)


def test_clamped_warranty_reports_priced_years(warranty_table):
    verado = Motor(model="350 Verado L", horsepower=350, msrp=48690)
    q = build_quote(verado, [], warranty_table, _selections(package_id="best"), as_of=AS_OF)
    assert q.selected_package.coverage_years == 5
    assert q.warranty.total_years == 5
    assert q.warranty.extended_years == 2
    assert q.warranty.warranty_price == Decimal(699 + 749)


def test_unavailable_bonus_is_warned_and_logged(motor_115, warranty_table, caplog):
    caplog.set_level(logging.WARNING)
    q = build_quote(motor_115, [], warranty_table, _selections(bonus_choice="no_payments"), as_of=AS_OF)
    assert [w.code for w in q.warnings] == ["bonus_option_unavailable"]
    assert "bonus_option_unavailable" in caplog.text


def test_snapshot_recomputes_to_same_totals(motor_115, rules, warranty_table):
    q = build_quote(motor_115, rules, warranty_table, _selections(bonus_choice="cash_rebate"), as_of=AS_OF)
    snap = QuoteSnapshot.model_validate_json(q.snapshot().model_dump_json())
    assert snap.applied_promotions == ["Mercury Get 7"]
    assert snap.package_id == "better"
    assert recompute_totals(snap) == q.totals
