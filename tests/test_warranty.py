from __future__ import annotations

from decimal import Decimal

from outboard_quote.calculators.warranty import (
    build_warranty_config,
    calculate_warranty_extension_cost,
    current_coverage_years,
    find_bracket,
    quote_warranty_extension,
)


def test_no_cost_when_already_at_target(warranty_table):
    assert calculate_warranty_extension_cost(Decimal(115), 7, 7, warranty_table) == 0


def test_no_cost_when_target_below_current(warranty_table):
    assert calculate_warranty_extension_cost(Decimal(115), 7, 5, warranty_table) == 0


def test_sums_years_after_current_through_target(warranty_table):
    # years 4, 5, 6, 7 of the 60.1-150 bracket
    cost = calculate_warranty_extension_cost(Decimal(115), 3, 7, warranty_table)
    assert cost == Decimal(289 + 309 + 339 + 369)


def test_single_year_extension(warranty_table):
    assert calculate_warranty_extension_cost(Decimal(115), 7, 8, warranty_table) == Decimal(399)


def test_bracket_bounds_are_inclusive(warranty_table):
    assert find_bracket(Decimal(25), warranty_table).hp_max == 25
    assert find_bracket(Decimal("60.1"), warranty_table).hp_min == Decimal("60.1")
    assert find_bracket(Decimal(40), warranty_table) is None


def test_missing_bracket_costs_zero_with_warning(warranty_table):
    ext = quote_warranty_extension(Decimal(40), 3, 7, warranty_table)
    assert ext.cost == 0
    assert ext.warning is not None
    assert ext.warning.code == "warranty_bracket_missing"


def test_unpriced_years_are_dropped_with_warning(warranty_table):
    ext = quote_warranty_extension(Decimal(350), 3, 8, warranty_table)
    assert ext.cost == Decimal(699 + 749)
    assert ext.priced_through_year == 5
    assert ext.warning.code == "warranty_years_unpriced"


def test_cost_is_monotonic_in_target(warranty_table):
    costs = [calculate_warranty_extension_cost(Decimal(115), 3, t, warranty_table) for t in range(3, 9)]
    assert costs == sorted(costs)


def test_current_coverage_is_capped():
    assert current_coverage_years(3, 4) == 7
    assert current_coverage_years(3, 7) == 8
    assert current_coverage_years(3, 0) == 3


def test_warranty_config_extension():
    cfg = build_warranty_config(3, 4, 8, Decimal(399))
    assert cfg.total_years == 8
    assert cfg.extended_years == 1
    assert cfg.warranty_price == Decimal(399)


def test_warranty_config_without_extension_has_no_price():
    cfg = build_warranty_config(3, 4, None, Decimal(399))
    assert cfg.total_years == 7
    assert cfg.extended_years == 0
    assert cfg.warranty_price == 0
