from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..models import Motor


def _norm(s: str) -> str:
    return "".join(ch for ch in s.lower() if ch.isalnum())


def _money(x: str) -> str:
    return (x or "").strip().replace(",", "").replace("$", "")


def _flag(x: str) -> Optional[bool]:
    v = (x or "").strip().lower()
    if v in ("y", "yes", "true", "1"):
        return True
    if v in ("n", "no", "false", "0"):
        return False
    return None


def parse(path: Optional[Path]) -> Dict[str, Any]:
    """Read a dealer inventory export into validated Motor records.

    Headers are matched loosely (case, spaces and punctuation ignored).
    Rows that fail validation are returned under "skipped" with the reason
    instead of aborting the whole file.
    """
    if not path:
        return {"motors": [], "skipped": []}

    motors: List[Motor] = []
    skipped: List[Dict[str, Any]] = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        headers = {h: _norm(h) for h in reader.fieldnames or []}
        inv = {v: k for k, v in headers.items()}

        def get(row: Dict[str, str], key_variants: List[str]) -> str:
            for k in key_variants:
                if k in inv:
                    return (row.get(inv[k]) or "").strip()
            return ""

        for line_no, row in enumerate(reader, start=2):
            model = get(row, ["model", "modeldisplay", "motormodel", "description"])
            if not model:
                continue
            data: Dict[str, Any] = {
                "id": get(row, ["id", "sku", "modelnumber", "partnumber"]) or None,
                "model": model,
                "horsepower": get(row, ["horsepower", "hp"]),
                "msrp": _money(get(row, ["msrp", "listprice", "basemsrp"])),
                "dealer_price": _money(get(row, ["dealerprice", "saleprice", "price"])) or None,
                "in_stock": bool(_flag(get(row, ["instock", "stock", "available"]))),
                "includes_propeller": _flag(get(row, ["includespropeller", "prop", "propincluded"])),
                "supports_external_tank": _flag(get(row, ["externaltank", "supportsexternaltank"])),
            }
            motor_type = get(row, ["motortype", "type"])
            if motor_type:
                data["motor_type"] = motor_type
            family = get(row, ["family", "series"])
            if family:
                data["family"] = family
            notes = get(row, ["accessorynotes", "includes", "notes"])
            if notes:
                data["accessory_notes"] = [n.strip() for n in notes.replace(";", ",").split(",") if n.strip()]
            try:
                motors.append(Motor(**data))
            except ValidationError as e:
                skipped.append({"line": line_no, "model": model, "errors": [err["msg"] for err in e.errors()]})

    return {"motors": motors, "skipped": skipped}
