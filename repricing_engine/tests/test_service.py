"""
Tests d'intégration de la façade RepricingService (adapters en mémoire)
"""

import pytest

from repricing_engine.errors import InvalidDraftState, MissingPricing
from repricing_engine.models.pricing import AdjustmentReason, DraftStatus, RepricingMode


class TestReprice:
    """Tests pour RepricingService.reprice."""

    def test_safe_run_then_approve(self, service, product_repo, sample_product, seed_pricing, pricing_repo):
        """Mode safe : brouillon seulement, le prix change à l'approbation."""
        product_repo.add(sample_product)
        seed_pricing("p1", net=50.0, cost=45.0)

        result = service.reprice(mode="safe")

        assert result.mode == RepricingMode.SAFE
        assert pricing_repo.pricing["p1"].b2c_store_net == 50.0

        approval = service.approve_draft(result.drafts[0].id, "manager-1")

        assert approval["applied"] is True
        assert pricing_repo.pricing["p1"].b2c_store_net == pytest.approx(53.0)
        with pytest.raises(InvalidDraftState):
            service.approve_draft(result.drafts[0].id, "manager-1")

    def test_auto_run_writes_live_price(self, service, seed_pricing, pricing_repo):
        seed_pricing("p1", net=50.0, cost=45.0)

        result = service.reprice(mode="auto", product_ids=["p1"])

        assert result.decisions[0].applied is True
        assert pricing_repo.pricing["p1"].b2c_store_net == pytest.approx(55.0)

    def test_safe_then_auto_same_day(self, service, seed_pricing, pricing_repo):
        """Le brouillon safe du matin n'empêche pas l'écriture du run auto."""
        seed_pricing("p1", net=50.0, cost=45.0)
        service.reprice("safe", product_ids=["p1"])

        result = service.reprice("auto", product_ids=["p1"])

        assert result.decisions[0].applied is True
        assert result.decisions[0].message == "duplicate_draft_same_day"
        assert pricing_repo.pricing["p1"].b2c_store_net == pytest.approx(55.0)
        assert pricing_repo.pricing["p1"].b2c_store_inc == pytest.approx(55.0 * 1.19)

    def test_default_mode_is_safe(self, service, seed_pricing):
        seed_pricing("p1", net=50.0, cost=45.0)
        result = service.reprice(product_ids=["p1"])
        assert result.mode == RepricingMode.SAFE

    def test_missing_product_pricing(self, service):
        result = service.reprice(product_ids=["ghost"])
        assert result.decisions[0].reason == AdjustmentReason.MISSING_PRICING


class TestSimulationAndDrafts:
    """Tests pour snapshot / simulate / create_draft / reject_draft."""

    def test_snapshot_missing(self, service):
        with pytest.raises(MissingPricing):
            service.snapshot("ghost")

    def test_simulate_with_delta(self, service, seed_pricing):
        seed_pricing("p1", net=100.0, cost=70.0)

        base, simulated = service.simulate("p1", delta=0.05)

        assert base.net == 100.0
        assert simulated.new_net == pytest.approx(105.0)

    def test_simulate_target_margin(self, service, seed_pricing):
        seed_pricing("p1", net=100.0, cost=70.0)
        _, simulated = service.simulate("p1", target_margin_pct=30)
        assert simulated.new_net == pytest.approx(100.0)

    def test_manual_draft_and_reject(self, service, seed_pricing, pricing_repo):
        seed_pricing("p1", net=100.0, cost=70.0)

        draft, created = service.create_draft("p1", "b2c", new_net=110.0, created_by="user-1", notes="Manual")

        assert created is True
        assert draft.channel == "B2C"
        assert draft.change_pct == pytest.approx(10.0)
        assert draft.old_margin_pct == pytest.approx(30.0)
        assert [d.id for d in service.list_pending_drafts("p1")] == [draft.id]

        rejected = service.reject_draft(draft.id, "manager-1")

        assert rejected.status == DraftStatus.REJECTED
        assert pricing_repo.pricing["p1"].b2c_store_net == 100.0


class TestRecordOutcome:
    """Tests pour RepricingService.record_outcome."""

    def test_signal_recorded(self, service, pricing_repo):
        service.record_outcome("p1", "b2c", "2024-W11", sales_change_pct=12.5, notes="after +6%")

        signal = pricing_repo.learning_signals[0]
        assert signal["channel"] == "B2C"
        assert signal["period"] == "2024-W11"
        assert signal["sales_change_pct"] == 12.5
        assert signal["stock_change_pct"] is None

    def test_period_required(self, service):
        with pytest.raises(ValueError):
            service.record_outcome("p1", "B2C", "")


class TestConfig:
    """Tests pour RepricingService.config_for."""

    def test_currency_override(self, pricing_repo, product_repo):
        from repricing_engine.service import RepricingService

        service = RepricingService(pricing_repo, product_repo, currency="CHF")

        assert service.config_for("B2C").default_currency == "CHF"
        assert service.config_for("B2C").draft_notes == "AI Auto-Repricing"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
