"""
Supplier price forensics — is a supplier's quote worth it?

Compares a quoted cost with what the piece would cost to make in house
(theoretical make cost) and with its raw melt value, then back-solves the
metal rate the supplier is implicitly charging to expose markups hidden in
the weight.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from jewel_costing.models.catalog_schema import LaborCost, Product, ProductionType
from jewel_costing.models.settings import GlobalSettings
from jewel_costing.services.costing_engine import (
    CostingEngine,
    Materials,
    Products,
    imported_labor_per_piece,
)

logger = logging.getLogger("jewelcost-auditor")


class Verdict(str, Enum):
    EXCELLENT = "Excellent"
    FAIR = "Fair"
    EXPENSIVE = "Expensive"
    OVERPRICED = "Overpriced"


class Efficiency(str, Enum):
    CHEAPER = "Cheaper"
    SIMILAR = "Similar"
    MORE_EXPENSIVE = "More Expensive"


@dataclass
class SupplierBreakdown:
    silver_cost: float
    material_cost: float
    est_labor: float
    supplier_reported_total_labor: float


@dataclass
class SupplierAnalysis:
    intrinsic_value: float
    theoretical_make_cost: float
    supplier_premium: float
    premium_percent: float
    verdict: Verdict
    effective_silver_price: float
    has_hidden_markup: bool
    labor_efficiency: Efficiency
    plating_efficiency: Efficiency
    breakdown: SupplierBreakdown


def _reported_labor_total(labor: LaborCost) -> float:
    return (
        (labor.casting_cost or 0.0)
        + (labor.technician_cost or 0.0)
        + labor.setter_cost
        + labor.stone_setting_cost
        + labor.subcontract_cost
    )


def _reported_plating_total(labor: LaborCost) -> float:
    return (labor.plating_cost_x or 0.0) + (labor.plating_cost_d or 0.0)


class SupplierAuditor:
    """Classifies supplier quotes against the configured thresholds."""

    def __init__(self, settings: Optional[GlobalSettings] = None):
        self.settings = settings or GlobalSettings()
        self.thresholds = self.settings.supplier

    def verdict_for(self, premium_percent: float) -> Verdict:
        """Monotonic: a higher premium never earns a better verdict."""
        t = self.thresholds
        if premium_percent <= t.excellent_max_pct:
            return Verdict.EXCELLENT
        if premium_percent <= t.fair_max_pct:
            return Verdict.FAIR
        if premium_percent <= t.expensive_max_pct:
            return Verdict.EXPENSIVE
        return Verdict.OVERPRICED

    @staticmethod
    def compare(reported: float, theoretical: float, cheaper_band: float, expensive_band: float) -> Efficiency:
        if reported <= 0:
            return Efficiency.SIMILAR
        diff = reported - theoretical
        if diff < -cheaper_band:
            return Efficiency.CHEAPER
        if diff > expensive_band:
            return Efficiency.MORE_EXPENSIVE
        return Efficiency.SIMILAR

    def classify(
        self,
        *,
        supplier_cost: float,
        theoretical_make_cost: float,
        intrinsic_value: float,
        metal_weight_g: float,
        material_cost: float = 0.0,
        silver_cost: float = 0.0,
        theoretical_labor: float = 0.0,
        theoretical_plating: float = 0.0,
        reported_labor: Optional[LaborCost] = None,
    ) -> SupplierAnalysis:
        """
        Args:
            supplier_cost: quoted price per piece
            theoretical_make_cost: in-house cost (metal + materials + labor)
            intrinsic_value: melt value (metal + raw materials, no labor)
            metal_weight_g: weight the supplier charges metal on
            material_cost: stones and other materials inside the piece
            silver_cost: metal share of the make cost, for the breakdown
            theoretical_labor: in-house casting + technician
            theoretical_plating: in-house plating for the piece's finish
            reported_labor: the supplier's own breakdown, absolute EUR per piece
        """
        t = self.thresholds
        reported = reported_labor or LaborCost()
        reported_labor_total = _reported_labor_total(reported)
        reported_plating_total = _reported_plating_total(reported)
        reported_extras = reported_labor_total + reported_plating_total

        premium = supplier_cost - theoretical_make_cost
        premium_percent = premium / theoretical_make_cost * 100 if theoretical_make_cost > 0 else 0.0

        # Back-solving the metal rate needs the supplier's labor split; without it
        # every euro of labor would be read as metal markup.
        effective_silver_price = 0.0
        has_hidden_markup = False
        if reported_extras > 0 and metal_weight_g > 0:
            residual_for_metal = supplier_cost - material_cost - reported_extras
            effective_silver_price = residual_for_metal / metal_weight_g
            ceiling = self.settings.silver_price_gram * (1 + t.hidden_markup_tolerance)
            has_hidden_markup = effective_silver_price > ceiling

        analysis = SupplierAnalysis(
            intrinsic_value=round(intrinsic_value, 2),
            theoretical_make_cost=round(theoretical_make_cost, 2),
            supplier_premium=round(premium, 2),
            premium_percent=round(premium_percent, 1),
            verdict=self.verdict_for(premium_percent),
            effective_silver_price=round(effective_silver_price, 3),
            has_hidden_markup=has_hidden_markup,
            labor_efficiency=self.compare(
                reported_labor_total, theoretical_labor, t.labor_cheaper_band, t.labor_expensive_band
            ),
            plating_efficiency=self.compare(
                reported_plating_total, theoretical_plating, t.plating_cheaper_band, t.plating_expensive_band
            ),
            breakdown=SupplierBreakdown(
                silver_cost=silver_cost,
                material_cost=material_cost,
                est_labor=theoretical_labor + theoretical_plating,
                supplier_reported_total_labor=reported_extras,
            ),
        )
        if has_hidden_markup:
            logger.info(
                f"Hidden metal markup: effective {effective_silver_price:.3f}/g "
                f"vs market {self.settings.silver_price_gram}/g"
            )
        return analysis


def analyze_supplier_value(
    product: Product,
    settings: GlobalSettings,
    materials: Materials,
    products: Products,
    supplier_cost: Optional[float] = None,
    reported_labor: Optional[LaborCost] = None,
) -> SupplierAnalysis:
    """
    Audit the supplier quote for ``product``.

    The theoretical make cost is the product built in house with fully
    auto-derived labor; the quote defaults to ``product.supplier_cost``.
    ``reported_labor`` is EUR per piece; when omitted it comes from
    ``product.labor``, converted from per-gram rates for imported products.
    """
    if reported_labor is None:
        if product.production_type == ProductionType.IMPORTED:
            reported_labor = imported_labor_per_piece(product)
        else:
            reported_labor = product.labor

    engine = CostingEngine(settings, materials, products)
    in_house = product.model_copy(
        update={"production_type": ProductionType.IN_HOUSE, "labor": LaborCost()}
    )
    make = engine.calculate_product_cost(in_house)
    intrinsic = engine.resolver.melt_value(in_house, settings.silver_price_gram)
    details = make.breakdown.details

    quote = supplier_cost if supplier_cost is not None else (product.supplier_cost or 0.0)
    return SupplierAuditor(settings).classify(
        supplier_cost=quote,
        theoretical_make_cost=make.raw_total,
        intrinsic_value=intrinsic,
        metal_weight_g=product.total_weight_g,
        material_cost=make.breakdown.materials,
        silver_cost=make.breakdown.silver,
        theoretical_labor=details["casting_cost"] + details["technician_cost"],
        theoretical_plating=details["plating_cost"],
        reported_labor=reported_labor,
    )
