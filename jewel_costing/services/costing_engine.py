"""
CostingEngine — production cost of cast silver jewelry.

Covers:
  - Master product cost: metal at market rate, recipe materials (recursive
    through sub-components), labor with operator pins
  - Imported products costed from supplier-reported per-gram rates
  - Variant estimates: stone-specific material prices and finish-specific
    plating on top of the master computation
  - Variant reconciliation: refresh cached active_price only where the
    recomputed cost moved beyond tolerance

All monetary values are in EUR. Every computation is a pure function of the
snapshot (settings, materials, products) given to the engine.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from jewel_costing.models.catalog_schema import (
    LaborCost,
    Material,
    PlatingType,
    Product,
    ProductionType,
    ProductVariant,
)
from jewel_costing.models.settings import GlobalSettings
from jewel_costing.services.bom_engine import Chain, RecipeResolver
from jewel_costing.services.labor_engine import LaborEngine
from jewel_costing.services.pricing_utils import round_price
from jewel_costing.services.sku_codec import FINISH_PLATING, get_variant_components

logger = logging.getLogger("jewelcost-costing")

Materials = Union[Mapping[str, Material], Iterable[Material]]
Products = Union[Mapping[str, Product], Iterable[Product]]


@dataclass
class CostBreakdown:
    silver: float
    materials: float
    labor: float
    details: Dict[str, float] = field(default_factory=dict)
    missing_references: List[str] = field(default_factory=list)


@dataclass
class CostResult:
    total: float            # retail-rounded (round_price)
    raw_total: float        # unrounded; used for accumulation and comparisons
    breakdown: CostBreakdown


@dataclass
class ReconcileResult:
    variants: List[ProductVariant]
    updated: List[str] = field(default_factory=list)     # suffixes whose active_price changed
    unchanged: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.updated)


def _cents(value: float) -> float:
    return round(value, 2)


def imported_labor_per_piece(product: Product, plating: Optional[PlatingType] = None) -> LaborCost:
    """
    An imported product's labor as EUR per piece.

    Suppliers report technician and plating as per-gram rates; these are
    multiplied by ``weight_g``, and only the plating pool matching ``plating``
    (default: the product's) is kept. Stone setting is already per piece.
    """
    labor = product.labor
    plating = plating or product.plating_type
    weight = product.weight_g

    plating_x = plating_d = 0.0
    if plating == PlatingType.TWO_TONE:
        plating_d = weight * (labor.plating_cost_d or 0.0)
    elif plating != PlatingType.NONE:
        plating_x = weight * (labor.plating_cost_x or 0.0)

    return labor.model_copy(update={
        "technician_cost": weight * (labor.technician_cost or 0.0),
        "plating_cost_x": plating_x,
        "plating_cost_d": plating_d,
    })


class CostingEngine:
    """
    Costing over one immutable catalog snapshot.

    Instantiate once per snapshot; the material/product indexes are built in
    the constructor and reused by every call.
    """

    def __init__(
        self,
        settings: Optional[GlobalSettings] = None,
        materials: Materials = (),
        products: Products = (),
    ) -> None:
        self.settings = settings or GlobalSettings()
        self.resolver = RecipeResolver(materials, products, max_depth=self.settings.max_recipe_depth)
        self.labor = LaborEngine(self.settings, self.resolver)

    # ------------------------------------------------------------------
    # Master cost
    # ------------------------------------------------------------------

    def calculate_product_cost(
        self, product: Product, silver_price_override: Optional[float] = None
    ) -> CostResult:
        """Full production cost of ``product``. Raises CyclicRecipeError on loops."""
        silver_price = self._silver_price(silver_price_override)
        return self._cost(product, (), silver_price)

    def _silver_price(self, override: Optional[float]) -> float:
        return override if override is not None else self.settings.silver_price_gram

    def _cost(
        self,
        product: Product,
        chain: Chain,
        silver_price: float,
        stone_code: str = "",
        finish_code: Optional[str] = None,
    ) -> CostResult:
        chain = self.resolver.enter(product, chain)
        plating = self._effective_plating(product, finish_code)

        if product.production_type == ProductionType.IMPORTED:
            return self._imported_cost(product, silver_price, plating)

        silver = product.total_weight_g * silver_price
        materials = self.resolver.materials_cost(
            product,
            chain,
            lambda sub, sub_chain: self._component_cost(sub, sub_chain, silver_price),
            stone_code=stone_code,
        )

        labor = self.labor.resolve(product)
        if finish_code == "D" and not product.is_component and "technician_cost" not in labor.pinned:
            labor.technician_cost = self.labor.two_tone_technician_cost(product)

        details = labor.details(plating)
        labor_total = sum(details.values())
        raw_total = silver + materials.total + labor_total

        details["stone_diff"] = materials.stone_differential
        details["total_weight"] = product.total_weight_g

        return CostResult(
            total=round_price(raw_total),
            raw_total=raw_total,
            breakdown=CostBreakdown(
                silver=silver,
                materials=_cents(materials.total),
                labor=labor_total,
                details=details,
                missing_references=materials.missing_references,
            ),
        )

    def _component_cost(self, sub: Product, chain: Chain, silver_price: float) -> Tuple[float, List[str]]:
        result = self._cost(sub, chain, silver_price)
        return result.raw_total, result.breakdown.missing_references

    def _imported_cost(self, product: Product, silver_price: float, plating: PlatingType) -> CostResult:
        """
        Imported pieces: the supplier reports technician and plating as
        per-gram rates, and stone setting as a flat amount.
        """
        labor = imported_labor_per_piece(product, plating)
        silver = product.weight_g * silver_price
        technician = labor.technician_cost
        plating_cost = labor.plating_cost_x + labor.plating_cost_d
        stones = labor.stone_setting_cost
        raw_total = silver + technician + plating_cost + stones
        return CostResult(
            total=round_price(raw_total),
            raw_total=raw_total,
            breakdown=CostBreakdown(
                silver=silver,
                materials=stones,
                labor=technician + plating_cost,
                details={
                    "technician_cost": technician,
                    "plating_cost": plating_cost,
                    "stone_setting_cost": stones,
                },
            ),
        )

    @staticmethod
    def _effective_plating(product: Product, finish_code: Optional[str]) -> PlatingType:
        # A finish letter on the variant decides the plating; no letter keeps the master's
        if finish_code:
            return FINISH_PLATING.get(finish_code, product.plating_type)
        return product.plating_type

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def estimate_variant_cost(
        self, product: Product, suffix: str, silver_price_override: Optional[float] = None
    ) -> CostResult:
        """
        Cost of one variant: the master computation with stone-specific
        material prices and the plating pool selected by the finish.
        """
        parts = get_variant_components(suffix, product.gender)
        if not parts.is_recognized:
            logger.warning(
                f"{product.sku}: suffix '{suffix}' has unrecognized part '{parts.unknown}'",
                extra={"sku": product.sku},
            )
        silver_price = self._silver_price(silver_price_override)
        return self._cost(
            product,
            (),
            silver_price,
            stone_code=parts.stone.code,
            finish_code=parts.finish.code,
        )

    def reconcile_variants(self, product: Product) -> ReconcileResult:
        """
        Recompute every variant and refresh ``active_price`` only where the
        new cost (in cents) differs from the cached one by more than the
        tolerance. Untouched variants are returned as the same objects.
        """
        tolerance = self.settings.variant_price_tolerance
        result = ReconcileResult(variants=[])
        for variant in product.variants:
            estimate = _cents(self.estimate_variant_cost(product, variant.suffix).raw_total)
            if abs(estimate - variant.active_price) > tolerance:
                result.variants.append(variant.model_copy(update={"active_price": estimate}))
                result.updated.append(variant.suffix)
            else:
                result.variants.append(variant)
                result.unchanged += 1
        return result

    def recalculate_product(self, product: Product) -> Product:
        """
        Refresh the master ``active_price`` and reconcile variants. Returns the
        very same object when nothing moved beyond tolerance.
        """
        updates: Dict[str, Any] = {}
        master_cost = _cents(self.calculate_product_cost(product).raw_total)
        if abs(master_cost - product.active_price) > self.settings.variant_price_tolerance:
            updates["active_price"] = master_cost

        reconciled = self.reconcile_variants(product)
        if reconciled.changed:
            updates["variants"] = reconciled.variants

        if not updates:
            return product
        logger.info(
            f"{product.sku}: active prices refreshed (variants updated: {reconciled.updated})",
            extra={"sku": product.sku},
        )
        return product.model_copy(update=updates)


# ---------------------------------------------------------------------------
# Functional entry points
# ---------------------------------------------------------------------------

def calculate_product_cost(
    product: Product,
    settings: GlobalSettings,
    materials: Materials,
    products: Products,
    silver_price_override: Optional[float] = None,
) -> CostResult:
    return CostingEngine(settings, materials, products).calculate_product_cost(product, silver_price_override)


def estimate_variant_cost(
    product: Product,
    suffix: str,
    settings: GlobalSettings,
    materials: Materials,
    products: Products,
    silver_price_override: Optional[float] = None,
) -> CostResult:
    return CostingEngine(settings, materials, products).estimate_variant_cost(product, suffix, silver_price_override)


def reconcile_variants(
    product: Product,
    settings: GlobalSettings,
    materials: Materials,
    products: Products,
) -> ReconcileResult:
    return CostingEngine(settings, materials, products).reconcile_variants(product)
