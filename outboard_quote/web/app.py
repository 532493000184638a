from __future__ import annotations

import logging
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from ..calculators.financing import calculate_monthly_payment, calculate_payment_with_frequency
from ..calculators.promotions import match_rules
from ..calculators.trade_in import estimate_trade_value
from ..calculators.warranty import quote_warranty_extension
from ..config import Catalog, load_catalog
from ..importers import motors_csv
from ..logic.recommendation import recommend_package
from ..models import (
    Motor,
    MonthlyPayment,
    MotorType,
    PaymentFrequency,
    PaymentSchedule,
    PromotionMatch,
    PurchasePath,
    QuoteSelections,
    Recommendation,
    TradeCondition,
    TradeInInfo,
    TradeValueEstimate,
    WarrantyExtension,
)
from ..quote import Quote, build_quote


logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[2]
CONFIGS_DIR = Path(os.environ.get("OUTBOARD_QUOTE_CONFIGS") or BASE_DIR / "configs")

app = FastAPI(title="Outboard Quote Engine API")


class QuoteRequest(BaseModel):
    motor: Optional[Motor] = None
    motor_id: Optional[str] = None
    selections: QuoteSelections = Field(default_factory=QuoteSelections)
    as_of: Optional[date] = None


class PaymentRequest(BaseModel):
    finance_amount: Decimal
    promo_rate: Optional[Decimal] = None
    default_rate: Decimal = Decimal("7.99")
    term_months: int = 60


class PaymentScheduleRequest(BaseModel):
    finance_amount: Decimal
    rate: Decimal
    term_months: int = 60
    frequency: PaymentFrequency = "monthly"


def _catalog() -> Catalog:
    return load_catalog(CONFIGS_DIR)


def _inventory() -> List[Motor]:
    path = CONFIGS_DIR / "motors.csv"
    if not path.exists():
        return []
    return motors_csv.parse(path)["motors"]


def _resolve_motor(req: QuoteRequest) -> Motor:
    if req.motor is not None:
        return req.motor
    if req.motor_id:
        for m in _inventory():
            if m.id == req.motor_id:
                return m
        raise HTTPException(status_code=404, detail=f"Unknown motor_id: {req.motor_id}")
    raise HTTPException(status_code=422, detail="Either motor or motor_id is required")


@app.get("/api/health")
def health():
    return {"ok": True, "configs": str(CONFIGS_DIR)}


@app.post("/api/quote", response_model=Quote)
def create_quote(req: QuoteRequest):
    catalog = _catalog()
    motor = _resolve_motor(req)
    q = build_quote(
        motor,
        catalog.promotions,
        catalog.warranty_table,
        selections=req.selections,
        policy=catalog.policy,
        as_of=req.as_of,
        recommendations=catalog.recommendations,
        trade_values=catalog.trade_values,
    )
    if q.warnings:
        logger.info("quote for %s returned %d warning(s)", motor.model, len(q.warnings))
    return q


@app.post("/api/payment", response_model=MonthlyPayment)
def monthly_payment(req: PaymentRequest):
    return calculate_monthly_payment(
        req.finance_amount, req.promo_rate, default_rate=req.default_rate, term_months=req.term_months
    )


@app.post("/api/payment/schedule", response_model=PaymentSchedule)
def payment_schedule(req: PaymentScheduleRequest):
    return calculate_payment_with_frequency(req.finance_amount, req.rate, req.term_months, req.frequency)


@app.get("/api/trade-in/estimate", response_model=TradeValueEstimate)
def trade_in_estimate(
    brand: str,
    year: int = Query(..., ge=1950),
    horsepower: Decimal = Query(..., gt=0),
    condition: TradeCondition = "fair",
    as_of: Optional[date] = None,
):
    catalog = _catalog()
    info = TradeInInfo(has_trade_in=True, brand=brand, year=year, horsepower=horsepower, condition=condition)
    return estimate_trade_value(info, catalog.trade_values, (as_of or date.today()).year, catalog.policy.trade_in)


@app.get("/api/warranty", response_model=WarrantyExtension)
def warranty_extension(
    horsepower: Decimal = Query(..., gt=0),
    current_years: int = Query(..., ge=0),
    target_years: int = Query(..., ge=0),
):
    ext = quote_warranty_extension(horsepower, current_years, target_years, _catalog().warranty_table)
    if ext.warning:
        logger.warning("warranty data gap code=%s detail=%s", ext.warning.code, ext.warning.message)
    return ext


@app.get("/api/recommendation", response_model=Recommendation)
def recommendation(
    boat_type: Optional[str] = None,
    horsepower: Optional[Decimal] = None,
    purchase_path: Optional[PurchasePath] = None,
):
    return recommend_package(boat_type, horsepower, purchase_path, _catalog().recommendations)


@app.get("/api/promotions/match", response_model=PromotionMatch)
def promotions_match(
    model: str,
    horsepower: Decimal = Query(..., gt=0),
    msrp: Decimal = Query(Decimal(0), ge=0),
    motor_type: MotorType = "Outboard",
    as_of: Optional[date] = None,
):
    motor = Motor(model=model, horsepower=horsepower, msrp=msrp, motor_type=motor_type)
    return match_rules(motor, _catalog().promotions, as_of or date.today())
