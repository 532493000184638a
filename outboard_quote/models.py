from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


MotorType = Literal["Outboard", "Electric", "Jet", "Diesel"]
MotorFamily = Literal["FourStroke", "ProXS", "Verado", "SeaPro"]
PackageId = Literal["good", "better", "best"]
PurchasePath = Literal["loose", "installed"]
ControlsOption = Literal["none", "adapter", "compatible"]
PaymentFrequency = Literal["monthly", "bi-weekly", "weekly"]
TradeCondition = Literal["excellent", "good", "fair", "poor"]

# brand -> year range ("2020-2024") -> horsepower -> condition -> value
TradeValueTable = Dict[str, Dict[str, Dict[int, Dict[str, Decimal]]]]


class Motor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    model: str
    horsepower: Decimal = Field(gt=0)
    motor_type: MotorType = "Outboard"
    family: Optional[MotorFamily] = None
    msrp: Decimal = Field(ge=0)
    sale_price: Optional[Decimal] = Field(default=None, alias="dealer_price")
    in_stock: bool = False
    # Explicit flags win over model-code heuristics when present
    includes_propeller: Optional[bool] = None
    supports_external_tank: Optional[bool] = None
    accessory_notes: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _sale_price_not_above_msrp(self) -> "Motor":
        if self.sale_price is not None and self.sale_price > self.msrp:
            raise ValueError("sale_price must not exceed msrp")
        return self

    @property
    def dealer_discount(self) -> Decimal:
        if self.sale_price is None or self.sale_price <= 0:
            return Decimal(0)
        return self.msrp - self.sale_price


class FinancingRate(BaseModel):
    months: int
    rate: Decimal


class RebateTier(BaseModel):
    hp_min: Decimal
    hp_max: Decimal
    rebate: Decimal = Decimal(0)


class NoPaymentsOption(BaseModel):
    kind: Literal["no_payments"] = "no_payments"
    title: str = "6 Months No Payments"
    deferral_months: int = 6


class SpecialFinancingOption(BaseModel):
    kind: Literal["special_financing"] = "special_financing"
    title: str = "Special Financing"
    rates: List[FinancingRate] = Field(default_factory=list)
    minimum_amount: Optional[Decimal] = None


class CashRebateOption(BaseModel):
    kind: Literal["cash_rebate"] = "cash_rebate"
    title: str = "Factory Cash Rebate"
    matrix: List[RebateTier] = Field(default_factory=list)


BonusOption = Annotated[
    Union[NoPaymentsOption, SpecialFinancingOption, CashRebateOption],
    Field(discriminator="kind"),
]
BonusKind = Literal["no_payments", "special_financing", "cash_rebate"]


class PromotionRule(BaseModel):
    id: Optional[str] = None
    name: str = ""
    discount_percentage: Decimal = Field(default=Decimal(0), ge=0, le=100)
    discount_fixed_amount: Decimal = Field(default=Decimal(0), ge=0)
    horsepower_min: Optional[Decimal] = None
    horsepower_max: Optional[Decimal] = None
    model: Optional[str] = None
    motor_type: Optional[str] = None
    priority: int = 0
    stackable: bool = False
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    warranty_extra_years: int = Field(default=0, ge=0)
    bonus_options: List[BonusOption] = Field(default_factory=list)


class WarrantyPriceRow(BaseModel):
    hp_min: Decimal
    hp_max: Decimal
    year_1_price: Decimal
    year_2_price: Decimal
    year_3_price: Decimal
    year_4_price: Decimal
    year_5_price: Decimal
    year_6_price: Optional[Decimal] = None
    year_7_price: Optional[Decimal] = None
    year_8_price: Optional[Decimal] = None

    def price_for_year(self, year: int) -> Optional[Decimal]:
        if year < 1 or year > 8:
            return None
        return getattr(self, f"year_{year}_price")

    @property
    def max_priced_year(self) -> int:
        year = 0
        while self.price_for_year(year + 1) is not None:
            year += 1
        return year


class QuoteOption(BaseModel):
    name: str
    price: Decimal = Field(default=Decimal(0), ge=0)


class TradeInInfo(BaseModel):
    has_trade_in: bool = False
    estimated_value: Decimal = Field(default=Decimal(0), ge=0)
    brand: Optional[str] = None
    year: Optional[int] = None
    horsepower: Optional[Decimal] = None
    condition: Optional[TradeCondition] = None
    penalty_factor: Optional[Decimal] = Field(default=None, ge=0, le=1)
    penalty_reason: Optional[str] = None


class WarrantyConfig(BaseModel):
    total_years: int
    extended_years: int = 0
    warranty_price: Decimal = Decimal(0)


class PricingWarning(BaseModel):
    """Diagnostic attached to a fail-open result (e.g. a missing price bracket)."""

    code: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)


class QuoteInput(BaseModel):
    msrp: Decimal = Decimal(0)
    dealer_discount: Decimal = Decimal(0)
    promo_value: Decimal = Decimal(0)
    accessories_total: Decimal = Decimal(0)
    warranty_price: Decimal = Decimal(0)
    trade_in_value: Decimal = Decimal(0)
    admin_discount: Decimal = Decimal(0)
    tax_rate: Decimal = Decimal("0.13")


class QuoteTotals(BaseModel):
    msrp: Decimal
    discount: Decimal
    promo_value: Decimal
    admin_discount: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    savings: Decimal


class MonthlyPayment(BaseModel):
    payment: Decimal
    payment_exact: Decimal
    term_months: int
    rate: Decimal
    total_amount: Decimal
    total_interest: Decimal


class PaymentSchedule(BaseModel):
    """Payment per period for monthly, bi-weekly or weekly schedules."""

    frequency: PaymentFrequency
    periods: int
    payment: Decimal
    payment_exact: Decimal
    term_months: int
    rate: Decimal
    total_amount: Decimal
    total_interest: Decimal


class TradeValueEstimate(BaseModel):
    low: Decimal
    high: Decimal
    value: Decimal
    pre_penalty_value: Decimal
    confidence: Literal["high", "medium", "low"]
    source: str
    factors: List[str] = Field(default_factory=list)
    penalty_factor: Decimal = Decimal(1)


class PromotionMatch(BaseModel):
    applied_rules: List[PromotionRule] = Field(default_factory=list)
    winning_rule: Optional[PromotionRule] = None
    total_discount: Decimal = Decimal(0)
    total_warranty_bonus_years: int = 0
    bonus_options: List[BonusOption] = Field(default_factory=list)


class BonusSelection(BaseModel):
    kind: Optional[BonusKind] = None
    cash_rebate: Decimal = Decimal(0)
    promo_rate: Optional[Decimal] = None
    term_months: Optional[int] = None
    minimum_amount: Optional[Decimal] = None
    deferral_months: int = 0


class WarrantyExtension(BaseModel):
    cost: Decimal = Decimal(0)
    current_years: int
    target_years: int
    priced_through_year: int
    warning: Optional[PricingWarning] = None


class Recommendation(BaseModel):
    package_id: PackageId
    reason: str
    badge: str = ""


class PackageOption(BaseModel):
    id: PackageId
    label: str
    price_before_tax: Decimal
    coverage_years: int
    features: List[str] = Field(default_factory=list)
    recommended: bool = False
    recommendation_reason: Optional[str] = None
    warranty_cost: Decimal = Decimal(0)
    pricing_input: QuoteInput
    totals: QuoteTotals
    monthly_payment: MonthlyPayment
    warnings: List[PricingWarning] = Field(default_factory=list)


class QuoteSelections(BaseModel):
    """Customer/staff choices collected by the quote builder."""

    options: List[QuoteOption] = Field(default_factory=list)
    trade_in: TradeInInfo = Field(default_factory=TradeInInfo)
    bonus_choice: Optional[BonusKind] = None
    package_id: Optional[PackageId] = None
    admin_discount: Decimal = Decimal(0)
    admin_notes: Optional[str] = None
    boat_type: Optional[str] = None
    purchase_path: Optional[PurchasePath] = None
    controls_option: Optional[ControlsOption] = None
    tiller_install_cost: Decimal = Decimal(0)
    term_months: Optional[int] = None

    @property
    def options_total(self) -> Decimal:
        return sum((o.price for o in self.options), Decimal(0))


class PackageAddOns(BaseModel):
    battery: Decimal = Decimal("179.99")
    propeller: Decimal = Decimal("299.99")
    fuel_tank: Decimal = Decimal(199)
    installation_labor: Decimal = Decimal(450)
    controls: Dict[str, Decimal] = Field(
        default_factory=lambda: {"none": Decimal(1200), "adapter": Decimal(125), "compatible": Decimal(0)}
    )


class TermTier(BaseModel):
    max_amount: Decimal
    months: int


class FinancingPolicy(BaseModel):
    default_rate: Decimal = Decimal("7.99")
    small_loan_rate: Decimal = Decimal("8.99")
    small_loan_threshold: Decimal = Decimal(10000)
    # Term by amount financed: the first tier whose max_amount exceeds it
    term_tiers: List[TermTier] = Field(
        default_factory=lambda: [
            TermTier(max_amount=Decimal(5000), months=36),
            TermTier(max_amount=Decimal(10000), months=48),
            TermTier(max_amount=Decimal(20000), months=60),
        ]
    )
    long_term_months: int = 120
    dealerplan_fee: Decimal = Decimal(299)


class WarrantyPolicy(BaseModel):
    base_years: int = 3
    max_years: int = 8
    complete_target_years: int = 7
    premium_target_years: int = 8


class TradeInPolicy(BaseModel):
    brand_penalties: Dict[str, Decimal] = Field(
        default_factory=lambda: {"JOHNSON": Decimal("0.5"), "EVINRUDE": Decimal("0.5")}
    )
    min_value: Decimal = Decimal(100)


class PolicyConfig(BaseModel):
    currency: Literal["CAD", "USD"] = "CAD"
    currency_symbol: str = "$"
    tax_rate: Decimal = Decimal("0.13")
    financing: FinancingPolicy = Field(default_factory=FinancingPolicy)
    warranty: WarrantyPolicy = Field(default_factory=WarrantyPolicy)
    add_ons: PackageAddOns = Field(default_factory=PackageAddOns)
    trade_in: TradeInPolicy = Field(default_factory=TradeInPolicy)


class RecommendationRule(BaseModel):
    package_id: PackageId
    reason: str
    badge: str = ""
    categories: Optional[List[str]] = None
    min_hp: Optional[Decimal] = None
    max_hp: Optional[Decimal] = None  # exclusive
    purchase_paths: Optional[List[PurchasePath]] = None


class RecommendationConfig(BaseModel):
    boat_categories: Dict[str, List[str]] = Field(default_factory=dict)
    rules: List[RecommendationRule] = Field(default_factory=list)
    fallback: Recommendation = Field(
        default_factory=lambda: Recommendation(
            package_id="better", reason="Best balance of coverage and value", badge="Most popular choice"
        )
    )
