from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


DOLLAR = Decimal(1)


def to_decimal(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    if x is None:
        return Decimal(0)
    return Decimal(str(x))


def round_currency(amount: Decimal, places: int = 2) -> Decimal:
    q = Decimal(10) ** -places
    return to_decimal(amount).quantize(q, rounding=ROUND_HALF_UP)


def round_whole(amount: Decimal) -> Decimal:
    return to_decimal(amount).quantize(DOLLAR, rounding=ROUND_HALF_UP)


def money(amount: Decimal, symbol: str = "$", places: int = 2) -> str:
    val = round_currency(amount, places)
    parts = f"{val:.{places}f}".split(".")
    whole = parts[0]
    frac = parts[1] if len(parts) > 1 else ""
    sign = ""
    if whole.startswith("-"):
        sign = "-"
        whole = whole[1:]
    whole_with_commas = "{:,}".format(int(whole))
    if not frac:
        return f"{sign}{symbol}{whole_with_commas}"
    return f"{sign}{symbol}{whole_with_commas}.{frac}"
