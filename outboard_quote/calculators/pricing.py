from __future__ import annotations

from ..models import QuoteInput, QuoteTotals


def compute_totals(data: QuoteInput) -> QuoteTotals:
    """Fold every price source into the customer-facing totals.

    Order: MSRP less dealer, admin and promo discounts (each off MSRP
    directly), plus accessories and warranty, less trade-in, then tax.
    Nothing is rounded here; a negative subtotal (oversized trade-in) is
    passed through as-is.
    """
    motor_subtotal = data.msrp - data.dealer_discount - data.admin_discount - data.promo_value
    subtotal = motor_subtotal + data.accessories_total + data.warranty_price - data.trade_in_value
    tax = subtotal * data.tax_rate
    total = subtotal + tax
    # Trade-in is a credit, not a saving
    savings = data.dealer_discount + data.admin_discount + data.promo_value

    return QuoteTotals(
        msrp=data.msrp,
        discount=data.dealer_discount,
        promo_value=data.promo_value,
        admin_discount=data.admin_discount,
        subtotal=subtotal,
        tax=tax,
        total=total,
        savings=savings,
    )
