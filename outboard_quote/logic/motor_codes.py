from __future__ import annotations

import re
from decimal import Decimal

from ..models import Motor


TILLER_CODES = ("MH", "EH", "MLH", "ELH", "EXLH", "ELHPT", "EXLHPT", "H")
MANUAL_START_CODES = ("MH", "MLH")


def _has_code(upper_model: str, code: str) -> bool:
    return re.search(rf"(^|\s|-){code}(\s|$|-)", upper_model) is not None


def is_tiller_motor(model: str) -> bool:
    """Detect tiller-handle motors from the model suffix (MH, ELH, EXLHPT...)."""
    m = (model or "").upper()
    if "TILLER" in m:
        return True
    for code in TILLER_CODES:
        # Standalone H only counts when it cannot be part of "HP"
        if code == "H" and "HP" in m:
            continue
        if _has_code(m, code):
            return True
    return False


def is_manual_start(model: str) -> bool:
    m = (model or "").upper()
    return any(code in m for code in MANUAL_START_CODES)


def requires_controls(motor: Motor) -> bool:
    return not is_tiller_motor(motor.model)


def includes_fuel_tank(motor: Motor) -> bool:
    if "fuel_tank" in motor.accessory_notes:
        return True
    hp = motor.horsepower
    tiller = is_tiller_motor(motor.model)
    if hp <= 6:
        return True
    if Decimal(8) <= hp <= Decimal(20):
        return True
    if Decimal(25) <= hp <= Decimal(30):
        return tiller and "PROKICKER" not in motor.model.upper()
    return False


def includes_propeller(motor: Motor) -> bool:
    if motor.includes_propeller is not None:
        return motor.includes_propeller
    if "propeller" in motor.accessory_notes:
        return True
    return is_tiller_motor(motor.model)


def can_add_external_fuel_tank(motor: Motor) -> bool:
    """Portable-range motors (up to 30 HP) that ship without a tank."""
    if motor.supports_external_tank is not None:
        return motor.supports_external_tank
    if motor.motor_type == "Electric":
        return False
    return motor.horsepower <= 30 and not includes_fuel_tank(motor)
