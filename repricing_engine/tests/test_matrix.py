"""
Tests unitaires pour matrix.py (matrice de prix par canal)
"""

import pytest

from repricing_engine.errors import ProductNotFound
from repricing_engine.matrix import MISSING_DATA_NOTE, build_pricing_matrix, compute_recommended_net
from repricing_engine.models.pricing import CHANNELS, PricingComponents


class TestComputeRecommendedNet:
    """Tests pour compute_recommended_net."""

    def test_below_band_targets_mid_margin(self):
        """B2C, bande 35-45 : coût 45, marge 10 % -> net = 45 / (1 - 0.40) = 75."""
        net, notes = compute_recommended_net("B2C", 45.0, 50.0, 10.0)

        assert net == pytest.approx(75.0)
        assert "below target band" in notes[0]

    def test_within_band_keeps_price(self):
        net, notes = compute_recommended_net("B2C", 60.0, 100.0, 40.0)

        assert net == 100.0
        assert "within optimal band" in notes[0]

    def test_above_band_slight_decrease(self):
        """Marge 60 % : max(40 / 0.65, 100 x 0.95) = 95."""
        net, notes = compute_recommended_net("B2C", 40.0, 100.0, 60.0)

        assert net == pytest.approx(95.0)
        assert "above optimal band" in notes[0]

    def test_missing_margin(self):
        net, notes = compute_recommended_net("B2C", 45.0, 50.0, None)

        assert net is None
        assert notes == ["Insufficient data to compute recommended price."]

    def test_unknown_channel_keeps_price(self):
        net, notes = compute_recommended_net("MARKETPLACE", 45.0, 50.0, 10.0)

        assert net == 50.0
        assert notes == ["No target margin band defined for this channel."]


class TestBuildPricingMatrix:
    """Tests pour build_pricing_matrix."""

    def test_one_row_per_channel(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0, full_cost_eur=45.0, vat_pct=19.0)

        matrix = build_pricing_matrix(components)

        assert [r.channel for r in matrix.rows] == list(CHANNELS)
        assert matrix.base_cost == 45.0

    def test_priced_channel_has_recommendation(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0, full_cost_eur=45.0, vat_pct=19.0)

        row = build_pricing_matrix(components).row("b2c")

        assert row.current_net == 50.0
        assert row.current_margin_pct == pytest.approx(10.0)
        assert row.recommended_net == pytest.approx(75.0)
        assert row.recommended_gross == pytest.approx(75.0 * 1.19)
        assert row.recommended_margin_pct == pytest.approx(40.0)
        assert row.change_pct == pytest.approx(50.0)

    def test_unpriced_channel_reports_missing_data(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0, full_cost_eur=45.0)

        row = build_pricing_matrix(components).row("AMAZON")

        assert row.current_net is None
        assert row.recommended_net is None
        assert row.notes == [MISSING_DATA_NOTE]
        assert row.to_dict()["recommended"] is None

    def test_cost_from_unit_components(self):
        components = PricingComponents(product_id="p1", dealer_basic_net=100.0, factory_price_unit=60.0, operations_per_unit=15.0)

        matrix = build_pricing_matrix(components)

        assert matrix.base_cost == pytest.approx(75.0)
        assert matrix.row("DEALER_BASIC").current_margin_pct == pytest.approx(25.0)


class TestServicePricingMatrix:
    """Tests pour RepricingService.pricing_matrix."""

    def test_by_sku(self, service, product_repo, sample_product, seed_pricing):
        product_repo.add(sample_product)
        seed_pricing("p1", net=100.0, cost=60.0)

        matrix = service.pricing_matrix(sku="SKU-001")

        assert matrix.product_id == "p1"
        assert matrix.row("B2C").recommended_net == 100.0

    def test_product_without_pricing(self, service, product_repo, sample_product):
        product_repo.add(sample_product)

        matrix = service.pricing_matrix(product_id="p1")

        assert len(matrix.rows) == len(CHANNELS)
        assert all(r.notes == [MISSING_DATA_NOTE] for r in matrix.rows)

    def test_unknown_product(self, service):
        with pytest.raises(ProductNotFound):
            service.pricing_matrix(product_id="ghost")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
