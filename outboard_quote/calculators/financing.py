from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..models import FinancingPolicy, MonthlyPayment, PaymentFrequency, PaymentSchedule
from ..utils import round_whole, to_decimal


PERIODS_PER_YEAR = {"monthly": 12, "bi-weekly": 26, "weekly": 52}


def _amortize(amount: Decimal, period_rate: Decimal, periods: int) -> Decimal:
    if periods <= 0:
        return amount
    if period_rate == 0:
        return amount / Decimal(periods)
    return amount * period_rate / (Decimal(1) - (Decimal(1) + period_rate) ** -periods)


def calculate_monthly_payment(
    finance_amount,
    promo_rate=None,
    default_rate=Decimal("7.99"),
    term_months: int = 60,
) -> MonthlyPayment:
    """Amortized monthly payment; 0% APR is straight division.

    Only the returned `payment` is rounded (whole dollars). Non-positive
    terms are treated as a single payment of the whole amount.
    """
    amount = to_decimal(finance_amount)
    rate = to_decimal(promo_rate if promo_rate is not None else default_rate)
    exact = _amortize(amount, rate / Decimal(100) / Decimal(12), term_months)

    periods = max(term_months, 1)
    total_amount = exact * periods
    return MonthlyPayment(
        payment=round_whole(exact),
        payment_exact=exact,
        term_months=term_months,
        rate=rate,
        total_amount=total_amount,
        total_interest=total_amount - amount,
    )


def default_financing_rate(amount, policy: Optional[FinancingPolicy] = None) -> Decimal:
    """Standard APR by amount financed: smaller loans carry the higher rate."""
    policy = policy or FinancingPolicy()
    if to_decimal(amount) < policy.small_loan_threshold:
        return policy.small_loan_rate
    return policy.default_rate


def calculate_payment_with_frequency(
    finance_amount,
    rate,
    term_months: int = 60,
    frequency: PaymentFrequency = "monthly",
) -> PaymentSchedule:
    """Payment per period when the customer pays monthly, bi-weekly or weekly.

    The term stays in months; the number of periods is the term converted to
    the frequency and the APR is split evenly over the periods in a year.
    """
    amount = to_decimal(finance_amount)
    apr = to_decimal(rate)
    per_year = PERIODS_PER_YEAR[frequency]
    periods = int((Decimal(term_months) * per_year / Decimal(12)).to_integral_value()) if term_months > 0 else 0
    exact = _amortize(amount, apr / Decimal(100) / Decimal(per_year), periods)
    total_amount = exact * max(periods, 1)
    return PaymentSchedule(
        frequency=frequency,
        periods=max(periods, 1),
        payment=round_whole(exact),
        payment_exact=exact,
        term_months=term_months,
        rate=apr,
        total_amount=total_amount,
        total_interest=total_amount - amount,
    )


def default_financing_term(amount, policy: Optional[FinancingPolicy] = None) -> int:
    """Standard term by amount financed: bigger loans get longer terms."""
    policy = policy or FinancingPolicy()
    value = to_decimal(amount)
    for tier in policy.term_tiers:
        if value < tier.max_amount:
            return tier.months
    return policy.long_term_months


def financed_amount(price_before_tax, tax_rate, dealerplan_fee=Decimal(299)) -> Decimal:
    price = to_decimal(price_before_tax)
    return price + price * to_decimal(tax_rate) + to_decimal(dealerplan_fee)
