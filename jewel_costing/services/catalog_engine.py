"""
Catalog-wide batch operations.

One broken product (cyclic recipe, too-deep nesting) or a missing order
reference never aborts a batch: it is skipped, counted and reported, and
everything else is processed normally.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from jewel_costing.models.catalog_schema import Material, OrderLine, Product
from jewel_costing.models.settings import GlobalSettings
from jewel_costing.services.bom_engine import RecipeResolutionError
from jewel_costing.services.costing_engine import CostingEngine
from jewel_costing.services.perf_monitor import timed

logger = logging.getLogger("jewelcost-catalog")


@dataclass
class BatchResult:
    products: List[Product]
    updated: List[str] = field(default_factory=list)
    skipped: int = 0
    errors: Dict[str, str] = field(default_factory=dict)


@dataclass
class ResyncResult:
    lines: List[OrderLine]
    updated: int = 0
    skipped: int = 0
    skipped_skus: List[str] = field(default_factory=list)


@timed
def recompute_catalog(
    products: Sequence[Product],
    settings: GlobalSettings,
    materials: Iterable[Material],
) -> BatchResult:
    """
    Recalculate master and variant active prices for every product, e.g.
    after the silver rate changed. Output keeps the input order; skipped
    products are returned unchanged.
    """
    engine = CostingEngine(settings, materials, products)
    result = BatchResult(products=[])

    for product in products:
        try:
            refreshed = engine.recalculate_product(product)
        except RecipeResolutionError as e:
            logger.error(f"Recompute skipped for {product.sku}: {e}", extra={"sku": product.sku})
            result.errors[product.sku] = str(e)
            result.skipped += 1
            result.products.append(product)
            continue

        if refreshed is not product:
            result.updated.append(product.sku)
        result.products.append(refreshed)

    logger.info(
        f"Catalog recompute: {len(result.updated)} updated, {result.skipped} skipped "
        f"of {len(products)} products",
        extra={"skipped": result.skipped},
    )
    return result


def _current_price(product: Product, suffix: str) -> Optional[float]:
    if suffix:
        variant = product.get_variant(suffix)
        if variant is None:
            return None
        if variant.selling_price is not None:
            return variant.selling_price
        return product.selling_price

    variant = product.get_variant("")
    if variant is not None and variant.selling_price is not None:
        return variant.selling_price
    return product.selling_price


@timed
def resync_order_lines(lines: Sequence[OrderLine], products: Iterable[Product]) -> ResyncResult:
    """
    Re-price order lines to the registry's current selling prices (variant
    price when set, else the master's). Lines whose product or variant no
    longer exists keep their original price and are counted as skipped.
    """
    by_sku = {p.sku: p for p in products}
    result = ResyncResult(lines=[])

    for line in lines:
        product = by_sku.get(line.sku)
        price = _current_price(product, line.variant_suffix) if product is not None else None
        if price is None:
            result.skipped += 1
            result.skipped_skus.append(f"{line.sku}{line.variant_suffix}")
            result.lines.append(line)
            continue

        if abs(price - line.price_at_order) > 1e-9:
            result.lines.append(line.model_copy(update={"price_at_order": price}))
            result.updated += 1
        else:
            result.lines.append(line)

    if result.skipped:
        logger.warning(f"Order resync skipped {result.skipped} line(s): {result.skipped_skus}")
    return result
