"""
Recipe / BOM Resolver — walks a product's bill of materials.

A recipe mixes raw materials (stones, cords, clasps) with nested
sub-component products (STX parts), which may themselves carry recipes.
The resolver owns the traversal: material lookups, the per-resolution
chain of visited SKUs, and the depth ceiling. Pricing of a nested product
is delegated back to the caller through ``component_cost`` so the same walk
serves master costing, variant estimates, plating weight rollups and melt
value.

Missing references never abort a resolution: they contribute 0 and are
reported in ``missing_references`` for the operator to fix. Misses inside a
sub-component are reported with the component path, e.g. ``STX-1/GONE``.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from jewel_costing import config
from jewel_costing.models.catalog_schema import ComponentItem, Material, Product, RawItem

logger = logging.getLogger("jewelcost-bom")

Chain = Tuple[str, ...]


class RecipeResolutionError(Exception):
    """Base class for recipe graphs that cannot be resolved."""


class CyclicRecipeError(RecipeResolutionError):
    """
    Raised when a component references a product already on the current
    resolution chain.

    Message format:
        CYCLIC_RECIPE: A -> B -> A. Action required: remove the component
        reference that closes the loop.
    """
    def __init__(self, chain: List[str]):
        self.chain = chain
        super().__init__(
            f"CYCLIC_RECIPE: {' -> '.join(chain)}. "
            f"Action required: remove the component reference that closes the loop."
        )


class RecipeDepthError(RecipeResolutionError):
    """Raised when component nesting exceeds the configured depth ceiling."""
    def __init__(self, chain: List[str], max_depth: int):
        self.chain = chain
        self.max_depth = max_depth
        super().__init__(
            f"RECIPE_TOO_DEEP: {' -> '.join(chain)} exceeds max depth {max_depth}."
        )


@dataclass
class BOMLine:
    item_type: str          # raw | component
    ref: str                # material id or component SKU
    description: str
    quantity: float
    unit_cost: float = 0.0
    subtotal: float = 0.0
    is_missing: bool = False
    notes: str = ""


@dataclass
class MaterialsTotal:
    total: float = 0.0
    stone_differential: float = 0.0     # extra cost of variant_prices over base cost
    lines: List[BOMLine] = field(default_factory=list)
    missing_references: List[str] = field(default_factory=list)


# (unit cost, missing references found inside the sub-product)
ComponentCost = Callable[[Product, Chain], Tuple[float, Sequence[str]]]


def _index_materials(materials: Union[Mapping[str, Material], Iterable[Material]]) -> Dict[str, Material]:
    if isinstance(materials, Mapping):
        return dict(materials)
    return {m.id: m for m in materials}


def _index_products(products: Union[Mapping[str, Product], Iterable[Product]]) -> Dict[str, Product]:
    if isinstance(products, Mapping):
        return {sku.upper(): p for sku, p in products.items()}
    return {p.sku: p for p in products}


def _accumulate(total: float, amount: float) -> float:
    return round(total + amount, config.MATERIAL_ACCUMULATION_DECIMALS)


class RecipeResolver:
    """Index of one catalog snapshot plus the guarded recipe walk over it."""

    def __init__(
        self,
        materials: Union[Mapping[str, Material], Iterable[Material]] = (),
        products: Union[Mapping[str, Product], Iterable[Product]] = (),
        max_depth: int = config.MAX_RECIPE_DEPTH,
    ) -> None:
        self.materials: Dict[str, Material] = _index_materials(materials)
        self.products: Dict[str, Product] = _index_products(products)
        self.max_depth = max_depth

    # ------------------------------------------------------------------
    # Chain guard
    # ------------------------------------------------------------------

    def enter(self, product: Product, chain: Chain = ()) -> Chain:
        """Push ``product`` onto the resolution chain, failing fast on cycles."""
        if product.sku in chain:
            raise CyclicRecipeError(list(chain) + [product.sku])
        if len(chain) >= self.max_depth:
            raise RecipeDepthError(list(chain) + [product.sku], self.max_depth)
        return chain + (product.sku,)

    def get_product(self, sku: str) -> Optional[Product]:
        return self.products.get(sku.upper())

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------

    def materials_cost(
        self,
        product: Product,
        chain: Chain,
        component_cost: ComponentCost,
        stone_code: str = "",
    ) -> MaterialsTotal:
        """
        Total the recipe of ``product`` (already entered on ``chain``).

        Raw items use ``variant_prices[stone_code]`` when the material defines
        one, else ``cost_per_unit``. Component items cost
        ``component_cost(sub_product, chain)`` times quantity; the misses the
        callback reports for the sub-product are carried up under its SKU.
        """
        result = MaterialsTotal()
        for item in product.recipe:
            if isinstance(item, RawItem):
                line = self._raw_line(item, stone_code, result)
            elif isinstance(item, ComponentItem):
                line = self._component_line(item, chain, component_cost, result)
            else:
                raise TypeError(f"Unsupported recipe item: {item!r}")

            if line.is_missing:
                result.missing_references.append(line.ref)
                logger.warning(
                    f"{product.sku}: {line.item_type} '{line.ref}' not found; costed at 0",
                    extra={"sku": product.sku},
                )
            result.total = _accumulate(result.total, line.subtotal)
            result.lines.append(line)
        return result

    def _raw_line(self, item: RawItem, stone_code: str, result: MaterialsTotal) -> BOMLine:
        material = self.materials.get(item.material_id)
        if material is None:
            return BOMLine("raw", item.material_id, "MISSING_MATERIAL", item.quantity, is_missing=True)

        unit_cost = material.cost_per_unit
        notes = ""
        if stone_code and stone_code in material.variant_prices:
            unit_cost = float(material.variant_prices[stone_code])
            result.stone_differential += (unit_cost - material.cost_per_unit) * item.quantity
            notes = f"variant price for {stone_code}"

        return BOMLine(
            item_type="raw",
            ref=material.id,
            description=material.name,
            quantity=item.quantity,
            unit_cost=unit_cost,
            subtotal=unit_cost * item.quantity,
            notes=notes,
        )

    def _component_line(
        self,
        item: ComponentItem,
        chain: Chain,
        component_cost: ComponentCost,
        result: MaterialsTotal,
    ) -> BOMLine:
        sub = self.get_product(item.component_sku)
        if sub is None:
            return BOMLine("component", item.component_sku, "MISSING_COMPONENT", item.quantity, is_missing=True)

        unit_cost, nested_missing = component_cost(sub, chain)
        result.missing_references.extend(f"{sub.sku}/{ref}" for ref in nested_missing)
        return BOMLine(
            item_type="component",
            ref=sub.sku,
            description=sub.category or sub.sku,
            quantity=item.quantity,
            unit_cost=unit_cost,
            subtotal=unit_cost * item.quantity,
            notes=f"{len(nested_missing)} missing inside" if nested_missing else "",
        )

    # ------------------------------------------------------------------
    # Weight & melt rollups
    # ------------------------------------------------------------------

    def rollup_weights(self, product: Product, chain: Chain = ()) -> Tuple[float, float]:
        """
        Plating-relevant weights (primary X pool, secondary D pool): the
        product's own weights plus every nested component's, times quantity.
        """
        chain = self.enter(product, chain)
        primary = product.weight_g
        secondary = product.secondary_weight_g
        for item in product.recipe:
            if not isinstance(item, ComponentItem):
                continue
            sub = self.get_product(item.component_sku)
            if sub is None:
                logger.warning(f"{product.sku}: component '{item.component_sku}' not found; weight ignored")
                continue
            sub_primary, sub_secondary = self.rollup_weights(sub, chain)
            primary += sub_primary * item.quantity
            secondary += sub_secondary * item.quantity
        return primary, secondary

    def melt_value(self, product: Product, silver_price: float, chain: Chain = ()) -> float:
        """Metal at market rate plus raw materials, through all components. No labor."""
        value, _ = self._melt(product, silver_price, chain)
        return value

    def _melt(self, product: Product, silver_price: float, chain: Chain) -> Tuple[float, List[str]]:
        chain = self.enter(product, chain)
        metal = product.total_weight_g * silver_price
        materials = self.materials_cost(
            product,
            chain,
            lambda sub, sub_chain: self._melt(sub, silver_price, sub_chain),
        )
        return metal + materials.total, materials.missing_references
