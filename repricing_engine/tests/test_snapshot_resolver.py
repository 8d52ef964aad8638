"""
Tests unitaires pour snapshot_resolver.py
"""

import pytest

from repricing_engine.errors import MissingPricing
from repricing_engine.models.pricing import PricingComponents
from repricing_engine.snapshot_resolver import SnapshotResolver, build_snapshot, resolve_channel_net


class TestBuildSnapshot:
    """Tests pour build_snapshot."""

    def test_b2c_snapshot_is_consistent(self):
        """gross et marge sont recalculés depuis le net."""
        components = PricingComponents(product_id="p1", b2c_store_net=100.0, full_cost_eur=70.0, vat_pct=19.0)

        snapshot = build_snapshot(components, "b2c")

        assert snapshot.channel == "B2C"
        assert snapshot.net == 100.0
        assert snapshot.gross == pytest.approx(119.0)
        assert snapshot.margin_pct == pytest.approx(30.0)
        assert snapshot.vat_rate == pytest.approx(0.19)
        assert snapshot.is_complete()
        assert snapshot.components["b2c_store_net"] == 100.0

    def test_default_channel_alias(self):
        components = PricingComponents(product_id="p1", uvp_net=80.0, cogs_eur=40.0)
        snapshot = build_snapshot(components, "DEFAULT")
        assert snapshot.channel == "B2C"
        assert snapshot.net == 80.0

    def test_full_cost_preferred_over_cogs(self):
        components = PricingComponents(product_id="p1", amazon_net=50.0, full_cost_eur=30.0, cogs_eur=20.0)
        snapshot = build_snapshot(components, "AMAZON")
        assert snapshot.cost_eur == 30.0

    def test_cost_from_unit_components(self):
        """Ni full_cost ni COGS : coût = somme des coûts unitaires détaillés."""
        components = PricingComponents(
            product_id="p1",
            b2c_store_net=50.0,
            factory_price_unit=20.0,
            shipping_inbound_per_unit=3.0,
            gs1_per_unit=0.5,
            retail_packaging_per_unit=1.5,
            marketing_per_unit=5.0,
        )

        snapshot = build_snapshot(components, "B2C")

        assert snapshot.cost_eur == pytest.approx(30.0)
        assert snapshot.margin_pct == pytest.approx(40.0)

    def test_cogs_preferred_over_unit_components(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0, cogs_eur=25.0, factory_price_unit=40.0)
        assert build_snapshot(components, "B2C").cost_eur == 25.0

    def test_zero_unit_components_are_not_a_cost(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0, factory_price_unit=0.0)
        with pytest.raises(MissingPricing) as exc_info:
            build_snapshot(components, "B2C")
        assert exc_info.value.missing == "cost"

    def test_default_vat_when_missing(self):
        components = PricingComponents(product_id="p1", dealer_basic_net=40.0, cogs_eur=20.0)
        snapshot = build_snapshot(components, "DEALER_BASIC")
        assert snapshot.vat_rate == pytest.approx(0.19)

    def test_missing_cost_raises(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0)
        with pytest.raises(MissingPricing) as exc_info:
            build_snapshot(components, "B2C")
        assert exc_info.value.missing == "cost"

    def test_missing_channel_net_raises(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0, cogs_eur=20.0)
        with pytest.raises(MissingPricing) as exc_info:
            build_snapshot(components, "AMAZON")
        assert exc_info.value.missing == "net"

    def test_zero_net_is_never_returned(self):
        components = PricingComponents(product_id="p1", b2c_store_net=0.0, cogs_eur=20.0)
        with pytest.raises(MissingPricing):
            build_snapshot(components, "B2C")

    def test_unknown_channel(self):
        components = PricingComponents(product_id="p1", b2c_store_net=50.0, cogs_eur=20.0)
        with pytest.raises(MissingPricing) as exc_info:
            build_snapshot(components, "MARKETPLACE")
        assert exc_info.value.missing == "channel"


class TestResolveChannelNet:
    """Tests pour resolve_channel_net."""

    def test_gross_fallback(self):
        """Seul le TTC est connu : net = TTC / (1 + TVA)."""
        components = PricingComponents(product_id="p1", amazon_inc=119.0)
        assert resolve_channel_net(components, "AMAZON", 0.19) == pytest.approx(100.0)

    def test_b2c_gross_falls_back_to_uvp_inc(self):
        """B2C sans net ni b2c_store_inc : le TTC UVP est ramené en net."""
        components = PricingComponents(product_id="p1", uvp_inc=119.0)
        assert resolve_channel_net(components, "B2C", 0.19) == pytest.approx(100.0)

    def test_store_gross_before_uvp_inc(self):
        components = PricingComponents(product_id="p1", b2c_store_inc=59.5, uvp_inc=119.0)
        assert resolve_channel_net(components, "B2C", 0.19) == pytest.approx(50.0)

    def test_store_net_before_uvp(self):
        components = PricingComponents(product_id="p1", b2c_store_net=90.0, uvp_net=100.0)
        assert resolve_channel_net(components, "B2C", 0.19) == 90.0


class TestSnapshotResolver:
    """Tests pour SnapshotResolver."""

    def test_resolve_from_repository(self, pricing_repo, seed_pricing):
        seed_pricing("p1", net=100.0, cost=70.0)
        snapshot = SnapshotResolver(pricing_repo).resolve("p1", "B2C")
        assert snapshot.margin_pct == pytest.approx(30.0)

    def test_no_pricing_row(self, pricing_repo):
        with pytest.raises(MissingPricing) as exc_info:
            SnapshotResolver(pricing_repo).resolve("unknown", "B2C")
        assert exc_info.value.missing == "pricing"

    def test_try_resolve_returns_none(self, pricing_repo):
        assert SnapshotResolver(pricing_repo).try_resolve("unknown", "B2C") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
