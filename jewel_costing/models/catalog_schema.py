"""
Catalog snapshot schemas — products, materials, recipes, variants, labor.

These are the immutable records the registry hands to the costing engines.
Every model is frozen: engines never mutate a snapshot, they return updated
copies via ``model_copy(update=...)``.
"""
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Gender(str, Enum):
    MEN = "Men"
    WOMEN = "Women"
    UNISEX = "Unisex"


class PlatingType(str, Enum):
    NONE = "None"
    GOLD_PLATED = "Gold-Plated"
    TWO_TONE = "Two-Tone"
    PLATINUM = "Platinum"
    ROSE_GOLD = "Rose-Gold"


class ProductionType(str, Enum):
    IN_HOUSE = "InHouse"
    IMPORTED = "Imported"


class MaterialType(str, Enum):
    METAL = "Metal"
    STONE = "Stone"
    CORD = "Cord"
    CHAIN = "Chain"
    COMPONENT = "Component"
    OTHER = "Other"


class Material(BaseModel):
    """A purchasable raw material (stone, cord, chain, clasp...)."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    type: MaterialType = MaterialType.OTHER
    cost_per_unit: float = Field(0.0, ge=0, description="EUR per unit")
    unit: str = Field("piece", description="e.g. piece, gram, cm")
    variant_prices: Dict[str, float] = Field(
        default_factory=dict,
        description="Stone code -> unit cost overriding cost_per_unit for that gemstone variant",
    )

    @field_validator("variant_prices", mode="before")
    @classmethod
    def _normalize_stone_codes(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {str(code).strip().upper(): price for code, price in value.items()}
        return value


# ---------------------------------------------------------------------------
# Recipe items: tagged union on ``type``
# ---------------------------------------------------------------------------

class RawItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["raw"] = "raw"
    material_id: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)


class ComponentItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["component"] = "component"
    component_sku: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)

    @field_validator("component_sku")
    @classmethod
    def _upper_sku(cls, value: str) -> str:
        return value.strip().upper()


RecipeItem = Annotated[Union[RawItem, ComponentItem], Field(discriminator="type")]


class ProductVariant(BaseModel):
    """A sellable finish/stone version of a master product."""
    model_config = ConfigDict(frozen=True)

    suffix: str = ""
    description: str = ""
    selling_price: Optional[float] = Field(None, ge=0)
    active_price: float = Field(0.0, description="Derived cost cache; recomputed, never authored")

    @field_validator("suffix")
    @classmethod
    def _upper_suffix(cls, value: str) -> str:
        return value.strip().upper()


# ---------------------------------------------------------------------------
# Labor
# ---------------------------------------------------------------------------

DERIVED_LABOR_FIELDS = ("casting_cost", "technician_cost", "plating_cost_x", "plating_cost_d")


class LaborCost(BaseModel):
    """
    Per-piece labor inputs.

    The four derivable fields hold ``None`` while they follow weight/recipe
    (auto-derived on every recalculation) and a number once an operator pins
    them. A pinned value survives any later change of weight, recipe or rates.
    """
    model_config = ConfigDict(frozen=True)

    casting_cost: Optional[float] = Field(None, ge=0)
    technician_cost: Optional[float] = Field(None, ge=0)
    plating_cost_x: Optional[float] = Field(None, ge=0, description="Primary finish pool (X/H)")
    plating_cost_d: Optional[float] = Field(None, ge=0, description="Secondary / two-tone pool (D)")

    setter_cost: float = Field(0.0, ge=0)
    subcontract_cost: float = Field(0.0, ge=0)
    stone_setting_cost: float = Field(0.0, ge=0)

    def is_pinned(self, field: str) -> bool:
        _check_derived(field)
        return getattr(self, field) is not None

    def pin(self, field: str, value: float) -> "LaborCost":
        _check_derived(field)
        return self.model_copy(update={field: float(value)})

    def unpin(self, field: str) -> "LaborCost":
        _check_derived(field)
        return self.model_copy(update={field: None})

    @classmethod
    def from_override_pairs(cls, record: Mapping[str, Any]) -> "LaborCost":
        """
        Build from a persisted record that stores each derivable field as a
        value plus ``<field>_manual_override`` flag. Values whose flag is false
        are dropped (they were only the last auto-derived snapshot).
        """
        data: Dict[str, Any] = {}
        for field in DERIVED_LABOR_FIELDS:
            if record.get(f"{field}_manual_override") and record.get(field) is not None:
                data[field] = float(record[field])
        for field in ("setter_cost", "subcontract_cost", "stone_setting_cost"):
            data[field] = float(record.get(field) or 0.0)
        return cls(**data)


def _check_derived(field: str) -> None:
    if field not in DERIVED_LABOR_FIELDS:
        raise ValueError(f"'{field}' is not a derivable labor field; expected one of {DERIVED_LABOR_FIELDS}")


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------

class Product(BaseModel):
    """Master product (or STX sub-component) as stored in the registry."""
    model_config = ConfigDict(frozen=True)

    sku: str = Field(..., min_length=1, description="Master SKU, unique")
    weight_g: float = Field(0.0, ge=0)
    secondary_weight_g: float = Field(0.0, ge=0, description="Cap/back or second-tone weight")
    gender: Gender = Gender.UNISEX
    category: str = ""
    plating_type: PlatingType = PlatingType.NONE
    production_type: ProductionType = ProductionType.IN_HOUSE

    recipe: List[RecipeItem] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)
    labor: LaborCost = Field(default_factory=LaborCost)

    selling_price: float = Field(0.0, ge=0)
    active_price: float = 0.0
    is_component: bool = False

    supplier_id: Optional[str] = None
    supplier_sku: Optional[str] = None
    supplier_cost: Optional[float] = Field(None, ge=0)

    @field_validator("sku")
    @classmethod
    def _upper_sku(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def total_weight_g(self) -> float:
        return self.weight_g + self.secondary_weight_g

    def get_variant(self, suffix: str) -> Optional[ProductVariant]:
        wanted = suffix.strip().upper()
        for variant in self.variants:
            if variant.suffix == wanted:
                return variant
        return None

    @property
    def is_lustre_only(self) -> bool:
        """Single variant with empty suffix: scanning the master is unambiguous."""
        return len(self.variants) == 1 and self.variants[0].suffix == ""


class OrderLine(BaseModel):
    """A line of a customer order, priced at the time it was taken."""
    model_config = ConfigDict(frozen=True)

    sku: str
    variant_suffix: str = ""
    quantity: int = Field(1, ge=1)
    price_at_order: float = Field(0.0, ge=0)

    @field_validator("sku", "variant_suffix")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()
