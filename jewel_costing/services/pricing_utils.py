"""Retail price rounding, margin repricing and display formatting."""
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from jewel_costing import config

_STEP = Decimal(config.PRICE_ROUNDING_STEP)


def round_price(price: float) -> float:
    """
    Round to the canonical retail step (nearest 10 cents, halves up):
    21.54 -> 21.50, 21.55 -> 21.60. Idempotent.
    """
    if not price:
        return 0.0
    return float(Decimal(str(price)).quantize(_STEP, rounding=ROUND_HALF_UP))


def price_from_margin(cost: float, margin_fraction: float) -> float:
    """
    Selling price that leaves ``margin_fraction`` of the price as margin:
    price = cost / (1 - margin). Margins of 100 % or more (and negative
    costs) are invalid and return the 0.0 sentinel.
    """
    if margin_fraction >= 1.0 or cost < 0:
        return 0.0
    return round_price(cost / (1.0 - margin_fraction))


def margin_percent(price: float, cost: float) -> float:
    """Gross margin as a percentage of the selling price."""
    if price <= 0:
        return 0.0
    return (price - cost) / price * 100


def suggested_wholesale_price(
    total_weight: float,
    silver_cost: float,
    labor_cost: float,
    material_cost: float,
    weight_surcharge: float = config.WHOLESALE_WEIGHT_SURCHARGE,
) -> float:
    """House wholesale formula: 2 × (labor + materials) + metal + surcharge per gram."""
    non_metal = labor_cost + material_cost
    return round_price(non_metal * 2 + silver_cost + total_weight * weight_surcharge)


def codify_price(price: Optional[float]) -> str:
    """Retail label code: 1 + price in cents + 9 (36.90 -> "136909")."""
    if not price or price <= 0:
        return ""
    cents = int(Decimal(str(price)).scaleb(2).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return f"1{cents}9"


def format_decimal(num: Optional[float], precision: int = 2) -> str:
    """Fixed precision with a comma decimal separator; None/NaN render as zero."""
    if num is None or (isinstance(num, float) and math.isnan(num)):
        num = 0.0
    return f"{num:.{precision}f}".replace(".", ",")


def format_currency(num: Optional[float]) -> str:
    return f"{format_decimal(num, 2)}€"
