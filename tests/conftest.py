from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from outboard_quote.models import Motor, WarrantyPriceRow


REPO_CONFIGS = Path(__file__).resolve().parents[1] / "configs"


@pytest.fixture
def configs_dir() -> Path:
    return REPO_CONFIGS


@pytest.fixture
def warranty_table():
    return [
        WarrantyPriceRow(
            hp_min=Decimal("2.5"), hp_max=Decimal(25),
            year_1_price=0, year_2_price=0, year_3_price=0, year_4_price=99, year_5_price=109,
            year_6_price=119, year_7_price=129, year_8_price=139,
        ),
        WarrantyPriceRow(
            hp_min=Decimal("60.1"), hp_max=Decimal(150),
            year_1_price=0, year_2_price=0, year_3_price=0, year_4_price=289, year_5_price=309,
            year_6_price=339, year_7_price=369, year_8_price=399,
        ),
        # priced through year 5 only
        WarrantyPriceRow(
            hp_min=Decimal("300.1"), hp_max=Decimal(600),
            year_1_price=0, year_2_price=0, year_3_price=0, year_4_price=699, year_5_price=749,
        ),
    ]


@pytest.fixture
def motor_115() -> Motor:
    return Motor(model="115 ELPT FourStroke", horsepower=115, msrp=10000, dealer_price=9500)


@pytest.fixture
def tiller_motor() -> Motor:
    return Motor(model="9.9 MH FourStroke", horsepower=Decimal("9.9"), msrp=3725, dealer_price=3499)
