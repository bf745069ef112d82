"""
Tests for supplier price forensics (services/auditor_engine.py).

Covers:
  1. Verdict thresholds, boundaries and monotonicity
  2. Premium over theoretical make cost
  3. Effective silver rate and hidden-markup detection
  4. Labor / plating efficiency bands
  5. analyze_supplier_value end to end on an imported product
"""

import pytest
from pydantic import ValidationError

from jewel_costing.models.catalog_schema import LaborCost, PlatingType, Product, ProductionType
from jewel_costing.models.settings import GlobalSettings, SupplierThresholds
from jewel_costing.services.auditor_engine import (
    Efficiency,
    SupplierAuditor,
    Verdict,
    analyze_supplier_value,
)
from jewel_costing.services.costing_engine import CostingEngine

VERDICT_ORDER = [Verdict.EXCELLENT, Verdict.FAIR, Verdict.EXPENSIVE, Verdict.OVERPRICED]


@pytest.fixture
def auditor(settings):
    return SupplierAuditor(settings)


# ---------------------------------------------------------------------------
# 1. Verdicts
# ---------------------------------------------------------------------------

class TestVerdict:

    @pytest.mark.parametrize("pct,verdict", [
        (-20.0, Verdict.EXCELLENT),
        (-5.0, Verdict.EXCELLENT),
        (-4.9, Verdict.FAIR),
        (30.0, Verdict.FAIR),
        (30.1, Verdict.EXPENSIVE),
        (80.0, Verdict.EXPENSIVE),
        (80.1, Verdict.OVERPRICED),
    ])
    def test_boundaries(self, auditor, pct, verdict):
        assert auditor.verdict_for(pct) == verdict

    def test_monotonic(self, auditor):
        ranks = [VERDICT_ORDER.index(auditor.verdict_for(pct / 2)) for pct in range(-200, 400)]
        assert ranks == sorted(ranks)

    def test_custom_thresholds(self):
        settings = GlobalSettings(supplier=SupplierThresholds(
            excellent_max_pct=0, fair_max_pct=10, expensive_max_pct=20,
        ))
        assert SupplierAuditor(settings).verdict_for(15) == Verdict.EXPENSIVE

    def test_thresholds_must_ascend(self):
        with pytest.raises(ValidationError):
            SupplierThresholds(excellent_max_pct=50, fair_max_pct=30)


# ---------------------------------------------------------------------------
# 2-4. Classification
# ---------------------------------------------------------------------------

class TestClassify:

    def test_premium(self, auditor):
        analysis = auditor.classify(
            supplier_cost=25.0, theoretical_make_cost=20.0, intrinsic_value=9.0, metal_weight_g=10.0,
        )
        assert analysis.supplier_premium == 5.0
        assert analysis.premium_percent == 25.0
        assert analysis.verdict == Verdict.FAIR

    def test_zero_make_cost(self, auditor):
        analysis = auditor.classify(
            supplier_cost=5.0, theoretical_make_cost=0.0, intrinsic_value=0.0, metal_weight_g=0.0,
        )
        assert analysis.premium_percent == 0.0

    def test_hidden_markup(self, auditor):
        # (30 - 2 - 5 - 3) / 10 g = 2.00/g against a 0.92/g ceiling
        analysis = auditor.classify(
            supplier_cost=30.0,
            theoretical_make_cost=25.0,
            intrinsic_value=10.0,
            metal_weight_g=10.0,
            material_cost=2.0,
            reported_labor=LaborCost(technician_cost=5.0, plating_cost_x=3.0),
        )
        assert analysis.effective_silver_price == 2.0
        assert analysis.has_hidden_markup is True
        assert analysis.breakdown.supplier_reported_total_labor == 8.0

    def test_fair_metal_rate(self, auditor):
        # (10.5 - 0 - 2) / 10 g = 0.85/g, within 0.80 × 1.15
        analysis = auditor.classify(
            supplier_cost=10.5, theoretical_make_cost=12.0, intrinsic_value=8.0, metal_weight_g=10.0,
            reported_labor=LaborCost(technician_cost=2.0),
        )
        assert analysis.effective_silver_price == 0.85
        assert analysis.has_hidden_markup is False

    def test_no_reported_labor_skips_backsolve(self, auditor):
        analysis = auditor.classify(
            supplier_cost=30.0, theoretical_make_cost=25.0, intrinsic_value=10.0, metal_weight_g=10.0,
        )
        assert analysis.effective_silver_price == 0.0
        assert analysis.has_hidden_markup is False

    @pytest.mark.parametrize("reported,expected", [
        (0.0, Efficiency.SIMILAR),
        (4.0, Efficiency.CHEAPER),
        (4.6, Efficiency.SIMILAR),
        (5.9, Efficiency.SIMILAR),
        (6.5, Efficiency.MORE_EXPENSIVE),
    ])
    def test_labor_bands(self, auditor, reported, expected):
        assert auditor.compare(reported, 5.0, 0.5, 1.0) == expected

    def test_plating_efficiency(self, auditor):
        analysis = auditor.classify(
            supplier_cost=20.0, theoretical_make_cost=20.0, intrinsic_value=8.0, metal_weight_g=5.0,
            theoretical_plating=3.0, reported_labor=LaborCost(plating_cost_x=4.0),
        )
        assert analysis.plating_efficiency == Efficiency.MORE_EXPENSIVE


# ---------------------------------------------------------------------------
# 5. End to end
# ---------------------------------------------------------------------------

class TestAnalyzeSupplierValue:

    def test_imported_piece(self, settings):
        # supplier technician 2.00 €/g on 5 g -> 10.00 € per piece
        product = Product(
            sku="IM200",
            weight_g=5.0,
            production_type=ProductionType.IMPORTED,
            labor=LaborCost(technician_cost=2.0),
            supplier_cost=12.0,
        )
        analysis = analyze_supplier_value(product, settings, [], [product])

        assert analysis.theoretical_make_cost == 8.25
        assert analysis.intrinsic_value == 4.0
        assert analysis.supplier_premium == 3.75
        assert analysis.premium_percent == 45.5
        assert analysis.verdict == Verdict.EXPENSIVE
        assert analysis.effective_silver_price == 0.4
        assert analysis.has_hidden_markup is False
        assert analysis.breakdown.supplier_reported_total_labor == 10.0
        assert analysis.labor_efficiency == Efficiency.MORE_EXPENSIVE
        assert analysis.plating_efficiency == Efficiency.SIMILAR

    def test_honestly_priced_import_has_no_markup(self, settings):
        product = Product(
            sku="IM202",
            weight_g=10.0,
            production_type=ProductionType.IMPORTED,
            labor=LaborCost(technician_cost=1.0),
            supplier_cost=18.0,
        )
        assert CostingEngine(settings).calculate_product_cost(product).raw_total == pytest.approx(18.0)

        analysis = analyze_supplier_value(product, settings, [], [product])
        assert analysis.effective_silver_price == 0.8
        assert analysis.has_hidden_markup is False

    def test_imported_plating_rate_uses_product_pool(self, settings):
        # 10 g gold-plated: technician 0.5 €/g + plating X 0.3 €/g = 8.00 € per piece;
        # the two-tone rate does not apply
        product = Product(
            sku="IM203",
            weight_g=10.0,
            plating_type=PlatingType.GOLD_PLATED,
            production_type=ProductionType.IMPORTED,
            labor=LaborCost(technician_cost=0.5, plating_cost_x=0.3, plating_cost_d=9.0),
            supplier_cost=20.0,
        )
        analysis = analyze_supplier_value(product, settings, [], [product])
        assert analysis.breakdown.supplier_reported_total_labor == pytest.approx(8.0)
        assert analysis.effective_silver_price == 1.2
        assert analysis.has_hidden_markup is True

    def test_explicit_reported_labor_is_per_piece(self, settings):
        product = Product(
            sku="IM204",
            weight_g=10.0,
            production_type=ProductionType.IMPORTED,
            labor=LaborCost(technician_cost=1.0),
            supplier_cost=18.0,
        )
        analysis = analyze_supplier_value(
            product, settings, [], [product], reported_labor=LaborCost(technician_cost=4.0)
        )
        assert analysis.effective_silver_price == 1.4
        assert analysis.has_hidden_markup is True

    def test_quote_override(self, settings):
        product = Product(sku="IM201", weight_g=5.0, supplier_cost=12.0)
        analysis = analyze_supplier_value(product, settings, [], [product], supplier_cost=7.0)
        assert analysis.verdict == Verdict.EXCELLENT
