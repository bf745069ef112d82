"""
conftest.py — Shared pytest fixtures for the costing engine test suite.

All tests are pure unit tests over in-memory catalog snapshots; no database,
network or registry service is involved.

Import-path bootstrapping:
    The repository root is inserted into sys.path so that ``jewel_costing.*``
    imports resolve even when the package is not installed.
"""

import os
import sys

import pytest

# ---------------------------------------------------------------------------
# Ensure the repository root is on the import path before any package imports.
# ---------------------------------------------------------------------------
_ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    """
    Default rates with silver at 0.80 EUR/g.

    casting 0.15/g, plating 0.60/g, component technician 0.50/g,
    technician tiers <=2.2: 1.30, <=4.2: 0.90, <=8.2: 0.70, above: 0.50.
    """
    from jewel_costing.models.settings import GlobalSettings
    return GlobalSettings(silver_price_gram=0.80)


# ---------------------------------------------------------------------------
# Catalog snapshot
# ---------------------------------------------------------------------------

@pytest.fixture
def materials():
    """
    "1"      white zircon 1.5mm   0.05 / piece
    "3"      black leather cord   0.50 / piece
    "CAB8"   8mm cabochon         1.00 / piece, KR -> 2.50, TG -> 1.80
    """
    from jewel_costing.models.catalog_schema import Material, MaterialType
    return [
        Material(id="1", name="White zircon 1.5mm", type=MaterialType.STONE, cost_per_unit=0.05),
        Material(id="3", name="Black leather cord", type=MaterialType.CORD, cost_per_unit=0.50),
        Material(
            id="CAB8",
            name="Cabochon 8mm",
            type=MaterialType.STONE,
            cost_per_unit=1.00,
            variant_prices={"KR": 2.50, "tg": 1.80},
        ),
    ]


@pytest.fixture
def stx_component():
    """STX-505: 2.5 g motif, one zircon. Cost at 0.80/g = 2.00 + 0.05 + 1.25 = 3.30."""
    from jewel_costing.models.catalog_schema import Product, RawItem
    return Product(
        sku="STX-505",
        weight_g=2.5,
        is_component=True,
        category="Component (STX)",
        recipe=[RawItem(material_id="1", quantity=1)],
    )


@pytest.fixture
def bracelet():
    """
    XR2020: men's 12 g bracelet with a cord, a cabochon and two STX-505 motifs.

    At 0.80/g: silver 9.60, materials 0.50 + 1.00 + 2×3.30 = 8.10,
    casting 1.80, technician 12×0.50 = 6.00 -> 25.50.
    """
    from jewel_costing.models.catalog_schema import (
        ComponentItem, Gender, Product, ProductVariant, RawItem,
    )
    return Product(
        sku="XR2020",
        weight_g=12.0,
        gender=Gender.MEN,
        selling_price=120.0,
        recipe=[
            RawItem(material_id="3", quantity=1),
            RawItem(material_id="CAB8", quantity=1),
            ComponentItem(component_sku="STX-505", quantity=2),
        ],
        variants=[
            ProductVariant(suffix="PKR", description="Patina - Carnelian"),
            ProductVariant(suffix="TG", description="Lustre - Tiger's Eye", selling_price=110.0),
        ],
    )


@pytest.fixture
def ring():
    """
    DA1005: women's 3.5 g gold-plated ring with ten zircons.

    At 0.80/g: silver 2.80, materials 0.50, casting 0.525,
    technician 3.5×0.90 = 3.15, plating X 3.5×0.60 = 2.10 -> 9.075.
    """
    from jewel_costing.models.catalog_schema import (
        Gender, PlatingType, Product, ProductVariant, RawItem,
    )
    return Product(
        sku="DA1005",
        weight_g=3.5,
        gender=Gender.WOMEN,
        plating_type=PlatingType.GOLD_PLATED,
        selling_price=45.0,
        recipe=[RawItem(material_id="1", quantity=10)],
        variants=[
            ProductVariant(suffix="P", description="Patina", selling_price=42.0),
            ProductVariant(suffix="X", description="Gold-Plated"),
        ],
    )


@pytest.fixture
def catalog(stx_component, bracelet, ring):
    return [stx_component, bracelet, ring]


@pytest.fixture
def cyclic_pair():
    """LOOP-A uses LOOP-B which uses LOOP-A."""
    from jewel_costing.models.catalog_schema import ComponentItem, Product
    a = Product(sku="LOOP-A", weight_g=1.0, recipe=[ComponentItem(component_sku="LOOP-B", quantity=1)])
    b = Product(sku="LOOP-B", weight_g=1.0, is_component=True,
                recipe=[ComponentItem(component_sku="LOOP-A", quantity=1)])
    return [a, b]


@pytest.fixture
def costing_engine(settings, materials, catalog):
    from jewel_costing.services.costing_engine import CostingEngine
    return CostingEngine(settings, materials, catalog)
