"""Global costing settings — market rate, labor rates, tolerances, verdict thresholds."""
import logging
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from jewel_costing import config

logger = logging.getLogger("jewelcost-settings")


class TechnicianTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_weight_g: float = Field(..., gt=0)
    rate_per_gram: float = Field(..., ge=0)


class SupplierThresholds(BaseModel):
    """Bands used by the supplier forensics analyzer."""
    model_config = ConfigDict(frozen=True)

    excellent_max_pct: float = config.VERDICT_EXCELLENT_MAX_PCT
    fair_max_pct: float = config.VERDICT_FAIR_MAX_PCT
    expensive_max_pct: float = config.VERDICT_EXPENSIVE_MAX_PCT
    hidden_markup_tolerance: float = Field(config.HIDDEN_MARKUP_TOLERANCE, ge=0)
    labor_cheaper_band: float = Field(config.LABOR_CHEAPER_BAND, ge=0)
    labor_expensive_band: float = Field(config.LABOR_EXPENSIVE_BAND, ge=0)
    plating_cheaper_band: float = Field(config.PLATING_CHEAPER_BAND, ge=0)
    plating_expensive_band: float = Field(config.PLATING_EXPENSIVE_BAND, ge=0)

    @model_validator(mode="after")
    def _ascending_verdicts(self) -> "SupplierThresholds":
        if not (self.excellent_max_pct <= self.fair_max_pct <= self.expensive_max_pct):
            raise ValueError(
                "Verdict thresholds must be ascending: "
                f"excellent ({self.excellent_max_pct}) <= fair ({self.fair_max_pct}) "
                f"<= expensive ({self.expensive_max_pct})"
            )
        return self


def _default_tiers() -> List[TechnicianTier]:
    return [TechnicianTier(max_weight_g=w, rate_per_gram=r) for w, r in config.TECHNICIAN_TIERS]


class GlobalSettings(BaseModel):
    """
    Deployment-wide rates. Treated as configuration: every engine reads its
    constants from here, never from literals.
    """
    model_config = ConfigDict(frozen=True)

    silver_price_gram: float = Field(config.DEFAULT_SILVER_PRICE_GRAM, ge=0)
    loss_percentage: float = Field(config.DEFAULT_LOSS_PERCENTAGE, ge=0)

    casting_rate_per_gram: float = Field(config.CASTING_RATE_PER_GRAM, ge=0)
    plating_rate_per_gram: float = Field(config.PLATING_RATE_PER_GRAM, ge=0)
    component_technician_rate: float = Field(config.COMPONENT_TECHNICIAN_RATE, ge=0)
    technician_tiers: List[TechnicianTier] = Field(default_factory=_default_tiers, min_length=1)

    wholesale_weight_surcharge: float = Field(config.WHOLESALE_WEIGHT_SURCHARGE, ge=0)
    variant_price_tolerance: float = Field(config.VARIANT_PRICE_TOLERANCE, ge=0)
    max_recipe_depth: int = Field(config.MAX_RECIPE_DEPTH, ge=1)

    supplier: SupplierThresholds = Field(default_factory=SupplierThresholds)

    @model_validator(mode="after")
    def _ascending_tiers(self) -> "GlobalSettings":
        ceilings = [tier.max_weight_g for tier in self.technician_tiers]
        if any(b <= a for a, b in zip(ceilings, ceilings[1:])):
            raise ValueError(f"technician_tiers must have strictly ascending max_weight_g, got {ceilings}")
        return self

    @classmethod
    def from_rates(cls, rates: Mapping[str, Any]) -> "GlobalSettings":
        """
        Build settings from a flat rate mapping (e.g. a persisted settings row).
        Unknown keys are ignored; ``supplier`` may be given as a nested mapping.
        """
        known = set(cls.model_fields)
        data: Dict[str, Any] = {}
        for key, value in rates.items():
            if key in known:
                data[key] = value
            else:
                logger.debug(f"Ignoring unknown settings key: {key}")
        return cls(**data)
