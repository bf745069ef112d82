"""
labor_engine.py — Labor Cost Model for cast silver jewelry

Covers:
  - Technician (finishing) cost by weight tier
  - Casting cost from total metal weight
  - Plating pools X (primary finish) and D (two-tone / secondary weight),
    rolled up through nested components
  - Sub-component (STX) labor rules
  - Operator pins: a pinned field is reported as-is and never re-derived

All monetary values are in EUR unless stated otherwise.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Sequence

from jewel_costing.models.catalog_schema import DERIVED_LABOR_FIELDS, PlatingType, Product
from jewel_costing.models.settings import GlobalSettings, TechnicianTier
from jewel_costing.services.bom_engine import RecipeResolver

logger = logging.getLogger("jewelcost-labor")

# Plating types finished from the primary (X) pool; two-tone uses the D pool
_X_POOL_PLATINGS = {PlatingType.GOLD_PLATED, PlatingType.PLATINUM, PlatingType.ROSE_GOLD}


def tier_rate(weight_g: float, tiers: Sequence[TechnicianTier]) -> float:
    """Per-gram technician rate for a piece of ``weight_g``."""
    for tier in tiers:
        if weight_g <= tier.max_weight_g:
            return tier.rate_per_gram
    return tiers[-1].rate_per_gram


def technician_cost(weight_g: float, tiers: Sequence[TechnicianTier]) -> float:
    """Technician cost = weight × rate of the first tier covering the weight."""
    if weight_g <= 0:
        return 0.0
    return weight_g * tier_rate(weight_g, tiers)


@dataclass
class ResolvedLabor:
    """Effective labor values for one product, after applying pins."""
    casting_cost: float
    technician_cost: float
    plating_cost_x: float
    plating_cost_d: float
    setter_cost: float = 0.0
    subcontract_cost: float = 0.0
    stone_setting_cost: float = 0.0
    pinned: FrozenSet[str] = field(default_factory=frozenset)

    def plating_for(self, plating: PlatingType) -> float:
        if plating == PlatingType.TWO_TONE:
            return self.plating_cost_d
        if plating in _X_POOL_PLATINGS:
            return self.plating_cost_x
        return 0.0

    def details(self, plating: PlatingType) -> Dict[str, float]:
        return {
            "casting_cost": self.casting_cost,
            "technician_cost": self.technician_cost,
            "setter_cost": self.setter_cost,
            "plating_cost": self.plating_for(plating),
            "subcontract_cost": self.subcontract_cost,
        }


class LaborEngine:
    """
    Derives labor from physical weight and the recipe, honoring operator pins.

    Derived values are computed on demand from the current snapshot, so a
    change of weight, recipe or rates is reflected on the next call. Pinned
    fields are read from the product and are never touched.
    """

    def __init__(self, settings: GlobalSettings, resolver: Optional[RecipeResolver] = None) -> None:
        self.settings = settings
        self.resolver = resolver or RecipeResolver(max_depth=settings.max_recipe_depth)

    # -----------------------------------------------------------------------
    # Auto-derived values
    # -----------------------------------------------------------------------

    def technician_cost(self, weight_g: float) -> float:
        return technician_cost(weight_g, self.settings.technician_tiers)

    def two_tone_technician_cost(self, product: Product) -> float:
        """
        Two-tone pieces are finished in two passes: the primary weight at the
        rate of the whole piece's tier, plus the secondary weight on its own.
        """
        rate = tier_rate(product.total_weight_g, self.settings.technician_tiers)
        primary = product.weight_g * rate if product.weight_g > 0 else 0.0
        return primary + self.technician_cost(product.secondary_weight_g)

    def auto_casting_cost(self, product: Product) -> float:
        if product.is_component:
            return 0.0
        return product.total_weight_g * self.settings.casting_rate_per_gram

    def auto_technician_cost(self, product: Product) -> float:
        if product.is_component:
            return product.weight_g * self.settings.component_technician_rate
        return self.technician_cost(product.total_weight_g)

    def auto_plating_costs(self, product: Product) -> Dict[str, float]:
        x_weight, d_weight = self.resolver.rollup_weights(product)
        rate = self.settings.plating_rate_per_gram
        return {"plating_cost_x": x_weight * rate, "plating_cost_d": d_weight * rate}

    def derive(self, product: Product, field_name: str) -> float:
        """Auto value of a single derivable field, ignoring any pin."""
        if field_name == "casting_cost":
            return self.auto_casting_cost(product)
        if field_name == "technician_cost":
            return self.auto_technician_cost(product)
        if field_name in ("plating_cost_x", "plating_cost_d"):
            return self.auto_plating_costs(product)[field_name]
        raise ValueError(f"'{field_name}' is not one of {DERIVED_LABOR_FIELDS}")

    # -----------------------------------------------------------------------
    # Resolution
    # -----------------------------------------------------------------------

    def resolve(self, product: Product) -> ResolvedLabor:
        """Effective labor: pinned values as stored, everything else derived."""
        labor = product.labor
        pinned = frozenset(f for f in DERIVED_LABOR_FIELDS if labor.is_pinned(f))

        plating = {}
        if not {"plating_cost_x", "plating_cost_d"} <= pinned:
            plating = self.auto_plating_costs(product)

        def pick(name: str) -> float:
            if name in pinned:
                return float(getattr(labor, name))
            if name in plating:
                return plating[name]
            return self.derive(product, name)

        return ResolvedLabor(
            casting_cost=pick("casting_cost"),
            technician_cost=pick("technician_cost"),
            plating_cost_x=pick("plating_cost_x"),
            plating_cost_d=pick("plating_cost_d"),
            setter_cost=labor.setter_cost,
            subcontract_cost=labor.subcontract_cost,
            stone_setting_cost=labor.stone_setting_cost,
            pinned=pinned,
        )

    def pin_current(self, product: Product, field_name: str) -> Product:
        """Freeze a derived field at its current value (operator "lock")."""
        if product.labor.is_pinned(field_name):
            return product
        value = round(self.derive(product, field_name), 4)
        logger.info(f"{product.sku}: pinning {field_name} at {value}", extra={"sku": product.sku})
        return product.model_copy(update={"labor": product.labor.pin(field_name, value)})
