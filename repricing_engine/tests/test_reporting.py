"""
Tests unitaires pour reporting.py
"""

import pandas as pd
import pytest

from repricing_engine.models.pricing import RepricingMode
from repricing_engine.policy import RepricingPolicyEngine
from repricing_engine.reporting import decisions_to_frame, drafts_to_frame, export_csv, summarize_batch


@pytest.fixture
def batch(pricing_repo, ledger, make_snapshot):
    engine = RepricingPolicyEngine(pricing_repo, ledger=ledger)
    snapshots = [
        make_snapshot("p1", net=50.0, cost=45.0),
        make_snapshot("p2", net=100.0, cost=70.0),
        make_snapshot("p3", net=120.0, cost=50.0),
        make_snapshot("p4", net=50.0, cost=None),
    ]
    return engine.evaluate_batch(snapshots, {}, RepricingMode.SAFE)


class TestFrames:
    """Tests pour decisions_to_frame / drafts_to_frame."""

    def test_decisions_frame(self, batch):
        df = decisions_to_frame(batch.decisions)

        assert list(df["product_id"]) == ["p1", "p2", "p3", "p4"]
        assert list(df["reason"]) == ["margin_low", "tiny_change", "margin_high", "missing_pricing"]

    def test_drafts_frame(self, batch):
        df = drafts_to_frame(batch.drafts)

        assert len(df) == 2
        assert df.loc[0, "status"] == "pending"
        assert df.loc[0, "new_net"] == pytest.approx(53.0)

    def test_empty_frames_keep_columns(self):
        assert "reason" in decisions_to_frame([]).columns
        assert "change_pct" in drafts_to_frame([]).columns


class TestSummarizeBatch:
    """Tests pour summarize_batch."""

    def test_summary(self, batch):
        summary = summarize_batch(batch)

        assert summary["mode"] == "safe"
        assert summary["products"] == 4
        assert summary["drafts"] == 2
        assert summary["applied"] == 0
        assert summary["by_reason"]["margin_low"] == 1
        assert summary["by_reason"]["missing_pricing"] == 1
        # +6 % et -6 % : moyenne nulle
        assert summary["mean_change_pct"] == pytest.approx(0.0)


class TestExportCsv:
    """Tests pour export_csv."""

    def test_one_row_per_product(self, batch, tmp_path):
        path = tmp_path / "repricing.csv"

        export_csv(batch, str(path))

        df = pd.read_csv(path)
        assert len(df) == 4
        assert "new_net" in df.columns
        assert df.loc[df["product_id"] == "p1", "new_net"].iloc[0] == pytest.approx(53.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
