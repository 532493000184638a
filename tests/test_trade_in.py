from __future__ import annotations

import logging
from decimal import Decimal

from outboard_quote.calculators.trade_in import (
    apply_brand_penalty,
    brand_penalty_factor,
    effective_trade_in_value,
    estimate_trade_value,
    fill_trade_in_estimate,
    round_trade_value,
    year_range,
)
from outboard_quote.models import TradeInInfo
from outboard_quote.utils import round_currency


PENALTIES = {"JOHNSON": Decimal("0.5"), "EVINRUDE": Decimal("0.5")}


def test_discontinued_brand_is_halved(caplog):
    caplog.set_level(logging.INFO)
    trade = TradeInInfo(has_trade_in=True, estimated_value=2000, brand="Johnson")
    adjusted = apply_brand_penalty(trade, PENALTIES)
    assert effective_trade_in_value(adjusted) == Decimal(1000)
    assert adjusted.penalty_reason == "brand_out_of_business"
    assert adjusted.estimated_value == Decimal(2000)
    assert "tradein_penalty_applied" in caplog.text


def test_penalty_respects_minimum_value():
    trade = TradeInInfo(has_trade_in=True, estimated_value=150, brand="evinrude etec")
    adjusted = apply_brand_penalty(trade, PENALTIES, min_value=Decimal(100))
    assert round_currency(effective_trade_in_value(adjusted)) == Decimal("100.00")


def test_other_brands_unchanged():
    trade = TradeInInfo(has_trade_in=True, estimated_value=2000, brand="Mercury")
    assert apply_brand_penalty(trade, PENALTIES) == trade
    assert effective_trade_in_value(trade) == Decimal(2000)


def test_no_trade_in_is_worth_nothing():
    assert effective_trade_in_value(TradeInInfo(estimated_value=2000)) == 0
    assert effective_trade_in_value(None) == 0


def test_brand_factor_lookup():
    assert brand_penalty_factor(" johnson ", PENALTIES) == Decimal("0.5")
    assert brand_penalty_factor(None, PENALTIES) == 1
    assert brand_penalty_factor("Yamaha", PENALTIES) == 1


def test_round_trade_value_to_nearest_25():
    assert round_trade_value(1000, 1300) == Decimal(1150)
    assert round_trade_value(1000, 1310) == Decimal(1150)
    assert round_trade_value(1000, 1340) == Decimal(1175)
    assert round_trade_value(10, 20) == Decimal(100)


TABLE = {
    "Mercury": {
        "2020-2024": {115: {"good": Decimal(9000)}},
        "2015-2019": {90: {"fair": Decimal(4500)}, 115: {"fair": Decimal(5800)}},
    },
}


def _trade(**kw):
    return TradeInInfo(has_trade_in=True, **kw)


def test_table_value_with_mercury_premium():
    est = estimate_trade_value(_trade(brand="mercury", year=2022, horsepower=115, condition="good"), TABLE, 2026)
    assert est.source == "Market value table"
    assert est.confidence == "high"
    assert est.low == Decimal("8415.00")
    assert est.high == Decimal("11385.00")
    assert est.value == Decimal(9900)


def test_table_uses_closest_horsepower():
    est = estimate_trade_value(_trade(brand="Mercury", year=2017, horsepower=100, condition="fair"), TABLE, 2026)
    assert est.value == Decimal(4500)


def test_old_motor_uses_age_curve():
    est = estimate_trade_value(_trade(brand="Mercury", year=1998, horsepower=50, condition="poor"), TABLE, 2026)
    # 50 HP x $40 x 0.76 age factor x 0.35 condition
    assert est.source == "Age-based estimate"
    assert est.confidence == "low"
    assert est.value == Decimal(525)


def test_unknown_brand_generic_estimate_with_penalty():
    est = estimate_trade_value(_trade(brand="Johnson", year=2015, horsepower=40, condition="good"), TABLE, 2026)
    assert est.source == "Generic estimate"
    assert est.pre_penalty_value == Decimal(475)
    assert est.penalty_factor == Decimal("0.5")
    assert est.value == Decimal(250)
    assert "Brand discontinued, value reduced" in est.factors


def test_condition_defaults_to_fair():
    a = estimate_trade_value(_trade(brand="Tohatsu", year=2023, horsepower=20), TABLE, 2026)
    b = estimate_trade_value(_trade(brand="Tohatsu", year=2023, horsepower=20, condition="fair"), TABLE, 2026)
    assert a == b


def test_fill_only_when_value_missing(caplog):
    caplog.set_level(logging.INFO)
    filled = fill_trade_in_estimate(_trade(brand="Mercury", year=2022, horsepower=115, condition="good"), TABLE, 2026)
    assert filled.estimated_value == Decimal(9900)
    assert "tradein_estimated" in caplog.text

    given = _trade(estimated_value=1200, brand="Mercury", year=2022, horsepower=115)
    assert fill_trade_in_estimate(given, TABLE, 2026) == given
    no_details = _trade(brand="Mercury")
    assert fill_trade_in_estimate(no_details, TABLE, 2026) == no_details


def test_year_ranges():
    assert year_range(2024) == "2020-2024"
    assert year_range(2015) == "2015-2019"
    assert year_range(2004) is None
