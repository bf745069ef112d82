"""
Tests for catalog and settings schemas (models/).

Covers:
  1. Recipe items as a tagged union: parsing, validation, extra fields
  2. Normalization of SKUs, suffixes and stone codes; immutability
  3. LaborCost pins and legacy override-flag records
  4. GlobalSettings validation and construction from a flat rate mapping
"""

import pytest
from pydantic import ValidationError

from jewel_costing.models.catalog_schema import (
    ComponentItem,
    LaborCost,
    Product,
    ProductVariant,
    RawItem,
)
from jewel_costing.models.settings import GlobalSettings, TechnicianTier


class TestRecipeItems:

    def test_parse_from_dicts(self):
        product = Product(sku="xr3000", recipe=[
            {"type": "raw", "material_id": "1", "quantity": 2},
            {"type": "component", "component_sku": "stx-505", "quantity": 1},
        ])
        assert product.sku == "XR3000"
        assert isinstance(product.recipe[0], RawItem)
        assert isinstance(product.recipe[1], ComponentItem)
        assert product.recipe[1].component_sku == "STX-505"

    def test_raw_item_rejects_component_fields(self):
        with pytest.raises(ValidationError):
            Product(sku="XR3001", recipe=[
                {"type": "raw", "material_id": "1", "quantity": 1, "component_sku": "STX-1"},
            ])

    def test_unknown_item_type(self):
        with pytest.raises(ValidationError):
            Product(sku="XR3002", recipe=[{"type": "mystery", "material_id": "1", "quantity": 1}])

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(ValidationError):
            RawItem(material_id="1", quantity=quantity)


class TestNormalization:

    def test_stone_codes_upper_cased(self, materials):
        assert set(materials[2].variant_prices) == {"KR", "TG"}

    def test_variant_lookup_is_case_insensitive(self, bracelet):
        assert bracelet.get_variant("pkr").suffix == "PKR"
        assert bracelet.get_variant("QN") is None

    def test_lustre_only(self):
        assert Product(sku="RN1", variants=[ProductVariant(suffix="")]).is_lustre_only
        assert not Product(sku="RN2", variants=[ProductVariant(suffix="P")]).is_lustre_only

    def test_snapshot_is_frozen(self, ring):
        with pytest.raises(ValidationError):
            ring.weight_g = 9.0

    def test_total_weight(self):
        assert Product(sku="DA9", weight_g=3.0, secondary_weight_g=0.5).total_weight_g == 3.5


class TestLaborCost:

    def test_pin_and_unpin(self):
        labor = LaborCost().pin("casting_cost", 1.2)
        assert labor.is_pinned("casting_cost")
        assert labor.casting_cost == 1.2
        assert not labor.unpin("casting_cost").is_pinned("casting_cost")

    def test_fixed_fields_cannot_be_pinned(self):
        with pytest.raises(ValueError):
            LaborCost().pin("setter_cost", 1.0)

    def test_from_override_pairs(self):
        labor = LaborCost.from_override_pairs({
            "casting_cost": 1.5,
            "casting_cost_manual_override": True,
            "technician_cost": 3.0,
            "technician_cost_manual_override": False,
            "setter_cost": 2,
        })
        assert labor.casting_cost == 1.5
        assert labor.technician_cost is None
        assert labor.setter_cost == 2.0
        assert labor.subcontract_cost == 0.0


class TestGlobalSettings:

    def test_defaults(self):
        settings = GlobalSettings()
        assert settings.casting_rate_per_gram == 0.15
        assert [t.rate_per_gram for t in settings.technician_tiers] == [1.30, 0.90, 0.70, 0.50]

    def test_tiers_must_ascend(self):
        with pytest.raises(ValidationError):
            GlobalSettings(technician_tiers=[
                TechnicianTier(max_weight_g=4.2, rate_per_gram=0.9),
                TechnicianTier(max_weight_g=2.2, rate_per_gram=1.3),
            ])

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError):
            GlobalSettings(silver_price_gram=-1)

    def test_from_rates_ignores_unknown_keys(self):
        settings = GlobalSettings.from_rates({
            "silver_price_gram": 0.9,
            "legacy_barcode_width": 2,
            "supplier": {"fair_max_pct": 25},
        })
        assert settings.silver_price_gram == 0.9
        assert settings.supplier.fair_max_pct == 25
