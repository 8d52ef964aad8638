"""
Export des résultats de repricing en DataFrame pandas.

Utilisé par le script `run_repricing` pour le résumé console et l'export CSV.
"""

from typing import Any, Dict, List

import pandas as pd

from .models.pricing import BatchResult, PriceAdjustmentDecision, PriceDraft

DECISION_COLUMNS = ["product_id", "adjustment_fraction", "reason", "applied", "draft_id", "message"]
DRAFT_COLUMNS = [
    "id",
    "product_id",
    "channel",
    "old_net",
    "new_net",
    "old_gross",
    "new_gross",
    "old_margin_pct",
    "new_margin_pct",
    "change_pct",
    "status",
    "created_at",
]


def decisions_to_frame(decisions: List[PriceAdjustmentDecision]) -> pd.DataFrame:
    return pd.DataFrame([d.to_dict() for d in decisions], columns=DECISION_COLUMNS)


def drafts_to_frame(drafts: List[PriceDraft]) -> pd.DataFrame:
    rows = [{k: v for k, v in d.to_dict().items() if k in DRAFT_COLUMNS} for d in drafts]
    return pd.DataFrame(rows, columns=DRAFT_COLUMNS)


def summarize_batch(result: BatchResult) -> Dict[str, Any]:
    """
    Résumé d'un batch : nombre de produits par raison, brouillons créés,
    prix appliqués et variation moyenne (en %) des brouillons.
    """
    decisions = decisions_to_frame(result.decisions)
    drafts = drafts_to_frame(result.drafts)

    by_reason = decisions["reason"].value_counts().to_dict() if not decisions.empty else {}
    mean_change = drafts["change_pct"].dropna().mean() if not drafts.empty else None

    return {
        "mode": result.mode.value,
        "products": int(len(decisions)),
        "drafts": int(len(drafts)),
        "applied": int(decisions["applied"].sum()) if not decisions.empty else 0,
        "by_reason": {str(k): int(v) for k, v in by_reason.items()},
        "mean_change_pct": None if mean_change is None or pd.isna(mean_change) else round(float(mean_change), 2),
    }


def export_csv(result: BatchResult, path: str) -> None:
    """Écrit une ligne par produit : décision + colonnes du brouillon associé."""
    decisions = decisions_to_frame(result.decisions)
    drafts = drafts_to_frame(result.drafts).drop(columns=["product_id"]).rename(columns={"id": "draft_id"})
    merged = decisions.merge(drafts, on="draft_id", how="left")
    merged.to_csv(path, index=False)
