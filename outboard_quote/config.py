from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from .logic.recommendation import default_config
from .models import PolicyConfig, PromotionRule, RecommendationConfig, TradeValueTable, WarrantyPriceRow


logger = logging.getLogger(__name__)

CONFIG_FILES = {
    "policy": "policy.yaml",
    "warranty": "warranty_pricing.yaml",
    "promotions": "promotions.yaml",
    "recommendations": "recommendations.yaml",
    "trade_values": "trade_values.yaml",
}


class Catalog(BaseModel):
    """Reference data handed to the pricing core for one quote session."""

    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    warranty_table: List[WarrantyPriceRow] = Field(default_factory=list)
    promotions: List[PromotionRule] = Field(default_factory=list)
    recommendations: RecommendationConfig = Field(default_factory=default_config)
    trade_values: TradeValueTable = Field(default_factory=dict)


def default_configs_dir() -> Path:
    env = os.environ.get("OUTBOARD_QUOTE_CONFIGS")
    if env:
        return Path(env)
    return Path("configs")


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        logger.info("config file %s not found, using defaults", path)
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_policy(configs_dir: Path) -> PolicyConfig:
    return PolicyConfig(**_load_yaml(configs_dir / CONFIG_FILES["policy"]))


def load_warranty_table(configs_dir: Path) -> List[WarrantyPriceRow]:
    data = _load_yaml(configs_dir / CONFIG_FILES["warranty"])
    return [WarrantyPriceRow(**row) for row in data.get("brackets", [])]


def load_promotions(configs_dir: Path) -> List[PromotionRule]:
    data = _load_yaml(configs_dir / CONFIG_FILES["promotions"])
    return [PromotionRule(**rule) for rule in data.get("rules", [])]


def load_recommendations(configs_dir: Path) -> RecommendationConfig:
    data = _load_yaml(configs_dir / CONFIG_FILES["recommendations"])
    if not data:
        return default_config()
    return RecommendationConfig(**data)


def load_trade_values(configs_dir: Path) -> dict:
    data = _load_yaml(configs_dir / CONFIG_FILES["trade_values"])
    return data.get("brands", {})


def load_catalog(configs_dir: Optional[Path] = None) -> Catalog:
    configs_dir = configs_dir or default_configs_dir()
    return Catalog(
        policy=load_policy(configs_dir),
        warranty_table=load_warranty_table(configs_dir),
        promotions=load_promotions(configs_dir),
        recommendations=load_recommendations(configs_dir),
        trade_values=load_trade_values(configs_dir),
    )


def missing_config_files(configs_dir: Path) -> List[str]:
    return [name for name in CONFIG_FILES.values() if not (configs_dir / name).exists()]
