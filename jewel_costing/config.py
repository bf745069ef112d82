"""
Costing configuration — single source of truth for default rates, tiers,
tolerances and supplier verdict thresholds.

Import from here in all engines and schemas rather than hardcoding values.
Every value below is only a default: deployments override them through
``GlobalSettings`` (see ``jewel_costing.models.settings``).
"""
from __future__ import annotations

# ── Metal ──────────────────────────────────────────────────────────────────────

# Market silver rate (EUR per gram)
DEFAULT_SILVER_PRICE_GRAM: float = 0.82

# Casting loss allowance reported alongside the metal rate (%)
DEFAULT_LOSS_PERCENTAGE: float = 10.0


# ── Labor rates (EUR per gram) ─────────────────────────────────────────────────

CASTING_RATE_PER_GRAM: float = 0.15
PLATING_RATE_PER_GRAM: float = 0.60

# Sub-components (STX parts) are finished at a flat per-gram rate, never cast separately
COMPONENT_TECHNICIAN_RATE: float = 0.50

# Technician (finishing) tiers: (max weight in grams, rate per gram).
# The first tier whose ceiling is >= the piece weight applies to the whole weight.
TECHNICIAN_TIERS: list[tuple[float, float]] = [
    (2.2, 1.30),
    (4.2, 0.90),
    (8.2, 0.70),
    (float("inf"), 0.50),
]


# ── Pricing ────────────────────────────────────────────────────────────────────

# Suggested wholesale: surcharge per gram of total weight (EUR)
WHOLESALE_WEIGHT_SURCHARGE: float = 2.0

# Retail rounding step (EUR) used by round_price
PRICE_ROUNDING_STEP: str = "0.1"

# Variant reconciliation: cached active_price is refreshed only beyond this delta
VARIANT_PRICE_TOLERANCE: float = 0.005


# ── Recipe resolution ──────────────────────────────────────────────────────────

# Hard ceiling on BOM nesting; real catalogs nest two or three levels deep
MAX_RECIPE_DEPTH: int = 10

# Materials accumulate at this precision before final display rounding
MATERIAL_ACCUMULATION_DECIMALS: int = 4


# ── Supplier forensics ─────────────────────────────────────────────────────────

# Verdict upper bounds on premium over theoretical make cost (%)
VERDICT_EXCELLENT_MAX_PCT: float = -5.0
VERDICT_FAIR_MAX_PCT: float = 30.0
VERDICT_EXPENSIVE_MAX_PCT: float = 80.0

# Effective metal rate above market × (1 + this) is flagged as a hidden markup
HIDDEN_MARKUP_TOLERANCE: float = 0.15

# Labor comparison band around "Similar" (EUR, supplier minus theoretical)
LABOR_CHEAPER_BAND: float = 0.5
LABOR_EXPENSIVE_BAND: float = 1.0

# Plating comparison band (EUR)
PLATING_CHEAPER_BAND: float = 0.2
PLATING_EXPENSIVE_BAND: float = 0.5


# ── SKU ranges ─────────────────────────────────────────────────────────────────

# expand_sku_range refuses to expand ranges wider than this
MAX_SKU_RANGE_SPAN: int = 500
