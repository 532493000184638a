from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..models import PricingWarning, WarrantyConfig, WarrantyExtension, WarrantyPriceRow


def find_bracket(horsepower: Decimal, table: Sequence[WarrantyPriceRow]) -> Optional[WarrantyPriceRow]:
    for row in table:
        if row.hp_min <= horsepower <= row.hp_max:
            return row
    return None


def quote_warranty_extension(
    horsepower: Decimal,
    current_years: int,
    target_years: int,
    table: Sequence[WarrantyPriceRow],
) -> WarrantyExtension:
    """Price the coverage years between current_years and target_years.

    Sums year_{N}_price for N = current+1 .. target from the HP bracket.
    Fails open: a missing bracket costs 0, and years the bracket does not
    price are dropped from the sum; both come back as a warning.
    """
    if target_years <= current_years:
        return WarrantyExtension(
            current_years=current_years, target_years=target_years, priced_through_year=current_years
        )

    row = find_bracket(horsepower, table)
    if row is None:
        return WarrantyExtension(
            current_years=current_years,
            target_years=target_years,
            priced_through_year=current_years,
            warning=PricingWarning(
                code="warranty_bracket_missing",
                message=f"No warranty price bracket covers {horsepower} HP",
                context={"horsepower": str(horsepower)},
            ),
        )

    priced_through = min(target_years, row.max_priced_year)
    cost = Decimal(0)
    for year in range(current_years + 1, priced_through + 1):
        cost += row.price_for_year(year)

    warning = None
    if priced_through < target_years:
        warning = PricingWarning(
            code="warranty_years_unpriced",
            message=f"Warranty table prices coverage only through year {row.max_priced_year}",
            context={
                "horsepower": str(horsepower),
                "target_years": target_years,
                "priced_through_year": max(priced_through, current_years),
            },
        )
    return WarrantyExtension(
        cost=cost,
        current_years=current_years,
        target_years=target_years,
        priced_through_year=max(priced_through, current_years),
        warning=warning,
    )


def calculate_warranty_extension_cost(
    horsepower: Decimal,
    current_years: int,
    target_years: int,
    table: Sequence[WarrantyPriceRow],
) -> Decimal:
    return quote_warranty_extension(horsepower, current_years, target_years, table).cost


def current_coverage_years(base_years: int, promo_bonus_years: int, max_years: int = 8) -> int:
    return min(base_years + promo_bonus_years, max_years)


def build_warranty_config(
    base_years: int,
    promo_bonus_years: int,
    target_years: Optional[int],
    warranty_price: Decimal = Decimal(0),
    max_years: int = 8,
) -> WarrantyConfig:
    current = current_coverage_years(base_years, promo_bonus_years, max_years)
    total = min(max(target_years or current, current), max_years)
    return WarrantyConfig(
        total_years=total,
        extended_years=max(0, total - current),
        warranty_price=warranty_price if total > current else Decimal(0),
    )
