from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from .calculators.financing import PERIODS_PER_YEAR, calculate_monthly_payment, calculate_payment_with_frequency
from .calculators.trade_in import estimate_trade_value
from .calculators.warranty import quote_warranty_extension
from .config import CONFIG_FILES, load_catalog, missing_config_files
from .importers import motors_csv
from .logic.recommendation import recommend_package
from .models import Motor, PricingWarning, QuoteOption, QuoteSelections, TradeInInfo
from .quote import build_quote
from .utils import money, to_decimal


app = typer.Typer(help="Mercury outboard quote engine CLI", add_completion=False, no_args_is_help=True)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pricing diagnostics")):
    if verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


def _echo_warnings(warnings: List[PricingWarning]) -> None:
    for w in warnings:
        typer.echo(f"[warn] {w.code}: {w.message}")


def _echo_validation_error(e: ValidationError) -> None:
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"])
        typer.echo(f"Invalid input {loc}: {err['msg']}")


def _find_motor(motors: List[Motor], model: str) -> Optional[Motor]:
    key = " ".join(model.lower().split())
    for m in motors:
        if m.id and m.id.lower() == key:
            return m
    for m in motors:
        if " ".join(m.model.lower().split()) == key:
            return m
    return None


def _parse_options(options: List[str]) -> List[QuoteOption]:
    """`NAME=PRICE` pairs from the command line."""
    out = []
    for raw in options:
        name, _, price = raw.rpartition("=")
        if not name:
            raise typer.BadParameter(f"expected NAME=PRICE, got {raw!r}", param_hint="--option")
        out.append(QuoteOption(name=name, price=price))
    return out


@app.command()
def quote(
    model: str = typer.Argument(..., help="Motor model or id as listed in the motors CSV"),
    configs: str = typer.Option("configs", help="Config folder (policy, warranty, promotions)"),
    motors: Optional[str] = typer.Option(None, help="Motors CSV (defaults to <configs>/motors.csv)"),
    package: Optional[str] = typer.Option(None, help="good | better | best (default: recommended)"),
    boat_type: Optional[str] = typer.Option(None, help="Boat type, e.g. pontoon"),
    purchase_path: Optional[str] = typer.Option(None, help="loose | installed"),
    controls: Optional[str] = typer.Option(None, help="none | adapter | compatible"),
    option: List[str] = typer.Option([], help="Extra line item NAME=PRICE (repeatable)"),
    trade_in: float = typer.Option(0.0, help="Estimated trade-in value"),
    trade_in_brand: Optional[str] = typer.Option(None, help="Trade-in motor brand"),
    trade_in_year: Optional[int] = typer.Option(None, help="Trade-in model year (estimates value when none given)"),
    trade_in_hp: Optional[float] = typer.Option(None, help="Trade-in horsepower"),
    trade_in_condition: Optional[str] = typer.Option(None, help="excellent | good | fair | poor"),
    bonus: Optional[str] = typer.Option(None, help="no_payments | special_financing | cash_rebate"),
    admin_discount: float = typer.Option(0.0, help="Staff discount off MSRP"),
    term: Optional[int] = typer.Option(None, help="Financing term in months"),
    as_of: Optional[str] = typer.Option(None, help="Pricing date YYYY-MM-DD (default: today)"),
    as_json: bool = typer.Option(False, "--json", help="Print the full quote as JSON"),
):
    """Price one motor: promotions, packages, totals and monthly payment."""
    cfg_dir = Path(configs)
    catalog = load_catalog(cfg_dir)
    motors_path = Path(motors) if motors else cfg_dir / "motors.csv"
    if not motors_path.exists():
        typer.echo(f"Motors file not found: {motors_path}")
        raise typer.Exit(code=2)
    inventory = motors_csv.parse(motors_path)
    motor = _find_motor(inventory["motors"], model)
    if motor is None:
        typer.echo(f"Motor not found: {model}")
        raise typer.Exit(code=2)

    try:
        selections = QuoteSelections(
            options=_parse_options(option),
            trade_in=TradeInInfo(
                has_trade_in=trade_in > 0 or trade_in_hp is not None,
                estimated_value=to_decimal(trade_in),
                brand=trade_in_brand,
                year=trade_in_year,
                horsepower=to_decimal(trade_in_hp) if trade_in_hp is not None else None,
                condition=trade_in_condition,
            ),
            bonus_choice=bonus,
            package_id=package,
            admin_discount=to_decimal(admin_discount),
            boat_type=boat_type,
            purchase_path=purchase_path,
            controls_option=controls,
            term_months=term,
        )
        pricing_date = date.fromisoformat(as_of) if as_of else None
    except ValidationError as e:
        _echo_validation_error(e)
        raise typer.Exit(code=2)
    except ValueError as e:
        typer.echo(f"Invalid input: {e}")
        raise typer.Exit(code=2)

    q = build_quote(
        motor,
        catalog.promotions,
        catalog.warranty_table,
        selections=selections,
        policy=catalog.policy,
        as_of=pricing_date,
        recommendations=catalog.recommendations,
        trade_values=catalog.trade_values,
    )

    if as_json:
        typer.echo(json.dumps(q.model_dump(mode="json"), indent=2))
        return

    sym = catalog.policy.currency_symbol
    typer.echo(f"{motor.model} ({motor.horsepower} HP)  MSRP {money(motor.msrp, sym)}")
    for rule in q.promotion.applied_rules:
        typer.echo(f"  promo: {rule.name or rule.id}")
    typer.echo(f"  coverage included: {q.current_coverage_years} years")
    for pkg in q.packages:
        mark = "*" if pkg.id == q.selected_package_id else " "
        typer.echo(
            f"{mark} {pkg.label:<32} {money(pkg.price_before_tax, sym):>12}"
            f"  {pkg.coverage_years}yr  {money(pkg.monthly_payment.payment, sym, 0)}/mo"
        )
    t = q.totals
    typer.echo(f"Subtotal: {money(t.subtotal, sym)}")
    typer.echo(f"Tax:      {money(t.tax, sym)}")
    typer.echo(f"Total:    {money(t.total, sym)}")
    typer.echo(f"Savings:  {money(t.savings, sym)}")
    f = q.financing
    typer.echo(f"Finance:  {money(f.payment, sym, 0)}/mo for {f.term_months} months at {f.rate}%")
    _echo_warnings(q.warnings)


@app.command()
def payment(
    amount: float = typer.Argument(..., help="Amount financed"),
    rate: Optional[float] = typer.Option(None, help="Promotional APR in percent"),
    default_rate: float = typer.Option(7.99, help="APR used when no promotional rate is given"),
    term: int = typer.Option(60, help="Term in months"),
    frequency: str = typer.Option("monthly", help="monthly | bi-weekly | weekly"),
):
    """Payment for an amount, rate and term."""
    if frequency not in PERIODS_PER_YEAR:
        typer.echo(f"Invalid input frequency: expected one of {', '.join(PERIODS_PER_YEAR)}")
        raise typer.Exit(code=2)
    if frequency != "monthly":
        apr = to_decimal(rate) if rate is not None else to_decimal(default_rate)
        schedule = calculate_payment_with_frequency(to_decimal(amount), apr, term, frequency)
        typer.echo(
            f"{money(schedule.payment, places=0)} {frequency} x {schedule.periods} payments at {schedule.rate}% "
            f"(exact {money(schedule.payment_exact)}, interest {money(schedule.total_interest)})"
        )
        return
    result = calculate_monthly_payment(
        to_decimal(amount),
        to_decimal(rate) if rate is not None else None,
        default_rate=to_decimal(default_rate),
        term_months=term,
    )
    typer.echo(
        f"{money(result.payment, places=0)}/mo for {result.term_months} months at {result.rate}% "
        f"(exact {money(result.payment_exact)}, interest {money(result.total_interest)})"
    )


@app.command()
def warranty(
    horsepower: float = typer.Argument(..., help="Motor horsepower"),
    current: int = typer.Argument(..., help="Years of coverage already included"),
    target: int = typer.Argument(..., help="Desired total years of coverage"),
    configs: str = typer.Option("configs", help="Config folder"),
):
    """Cost to extend warranty coverage from current to target years."""
    catalog = load_catalog(Path(configs))
    ext = quote_warranty_extension(to_decimal(horsepower), current, target, catalog.warranty_table)
    typer.echo(
        f"Extension {ext.current_years} -> {ext.target_years} years: "
        f"{money(ext.cost, catalog.policy.currency_symbol)}"
    )
    if ext.warning:
        _echo_warnings([ext.warning])


@app.command()
def recommend(
    boat_type: str = typer.Argument(..., help="Boat type, e.g. pontoon"),
    horsepower: float = typer.Argument(..., help="Motor horsepower"),
    purchase_path: Optional[str] = typer.Option(None, help="loose | installed"),
    configs: str = typer.Option("configs", help="Config folder"),
):
    """Recommended package tier for a boat type and motor size."""
    catalog = load_catalog(Path(configs))
    rec = recommend_package(boat_type, to_decimal(horsepower), purchase_path, catalog.recommendations)
    typer.echo(f"{rec.package_id}: {rec.reason}" + (f" [{rec.badge}]" if rec.badge else ""))


@app.command("trade-value")
def trade_value(
    brand: str = typer.Argument(..., help="Trade-in motor brand"),
    year: int = typer.Argument(..., help="Model year"),
    horsepower: float = typer.Argument(..., help="Horsepower"),
    condition: str = typer.Option("fair", help="excellent | good | fair | poor"),
    as_of: Optional[str] = typer.Option(None, help="Valuation date YYYY-MM-DD (default: today)"),
    configs: str = typer.Option("configs", help="Config folder"),
):
    """Estimated trade-in range for a used motor."""
    catalog = load_catalog(Path(configs))
    try:
        info = TradeInInfo(
            has_trade_in=True, brand=brand, year=year, horsepower=to_decimal(horsepower), condition=condition
        )
        valuation_year = date.fromisoformat(as_of).year if as_of else date.today().year
    except ValidationError as e:
        _echo_validation_error(e)
        raise typer.Exit(code=2)
    except ValueError as e:
        typer.echo(f"Invalid input: {e}")
        raise typer.Exit(code=2)
    est = estimate_trade_value(info, catalog.trade_values, valuation_year, catalog.policy.trade_in)
    sym = catalog.policy.currency_symbol
    typer.echo(
        f"{money(est.value, sym, 0)} (range {money(est.low, sym, 0)} - {money(est.high, sym, 0)}, "
        f"{est.confidence} confidence, {est.source})"
    )
    for factor in est.factors:
        typer.echo(f"  - {factor}")


@app.command()
def validate(
    configs: str = typer.Option("configs", help="Config folder"),
    motors: Optional[str] = typer.Option(None, help="Motors CSV (defaults to <configs>/motors.csv)"),
):
    """Check config files and motor inventory; report gaps."""
    cfg_dir = Path(configs)
    missing = missing_config_files(cfg_dir)
    if missing:
        typer.echo(f"Missing configs: {', '.join(missing)}")
        raise typer.Exit(code=2)
    try:
        catalog = load_catalog(cfg_dir)
    except ValidationError as e:
        _echo_validation_error(e)
        raise typer.Exit(code=2)

    problems = 0
    motors_path = Path(motors) if motors else cfg_dir / "motors.csv"
    if motors_path.exists():
        inventory = motors_csv.parse(motors_path)
        for row in inventory["skipped"]:
            problems += 1
            typer.echo(f"[warn] {motors_path.name}:{row['line']} {row['model']}: {'; '.join(row['errors'])}")
        for motor in inventory["motors"]:
            ext = quote_warranty_extension(
                motor.horsepower,
                catalog.policy.warranty.base_years,
                catalog.policy.warranty.premium_target_years,
                catalog.warranty_table,
            )
            if ext.warning:
                typer.echo(f"[warn] {motor.model}: {ext.warning.message}")
                # unpriced upper years are reported, a missing bracket fails
                if ext.warning.code == "warranty_bracket_missing":
                    problems += 1
    if problems:
        raise typer.Exit(code=2)
    typer.echo(f"OK: {len(CONFIG_FILES)} config files present, {len(catalog.promotions)} promotions loaded.")


if __name__ == "__main__":  # pragma: no cover
    app()
