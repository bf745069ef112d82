from jewel_costing.models.catalog_schema import (
    DERIVED_LABOR_FIELDS,
    ComponentItem,
    Gender,
    LaborCost,
    Material,
    MaterialType,
    OrderLine,
    PlatingType,
    Product,
    ProductionType,
    ProductVariant,
    RawItem,
    RecipeItem,
)
from jewel_costing.models.settings import GlobalSettings, SupplierThresholds, TechnicianTier

__all__ = [
    "DERIVED_LABOR_FIELDS",
    "ComponentItem",
    "Gender",
    "GlobalSettings",
    "LaborCost",
    "Material",
    "MaterialType",
    "OrderLine",
    "PlatingType",
    "Product",
    "ProductionType",
    "ProductVariant",
    "RawItem",
    "RecipeItem",
    "SupplierThresholds",
    "TechnicianTier",
]
