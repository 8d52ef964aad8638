"""
Sous-package `models` du moteur de repricing.

Contient les dataclasses partagées :
- snapshots de prix, observations concurrentes, décisions et brouillons,
- fiches produit et filtres de listing du catalogue.
"""

from .pricing import (
    AdjustmentReason,
    BatchResult,
    CompetitorComparison,
    CompetitorObservation,
    DraftStatus,
    PriceAdjustmentDecision,
    PriceDraft,
    PricingAdvice,
    PricingComponents,
    PricingSnapshot,
    RepricingMode,
    SimulationResult,
)
from .product import ProductListFilters, ProductListResult, ProductRecord

__all__ = [
    "AdjustmentReason",
    "BatchResult",
    "CompetitorComparison",
    "CompetitorObservation",
    "DraftStatus",
    "PriceAdjustmentDecision",
    "PriceDraft",
    "PricingAdvice",
    "PricingComponents",
    "PricingSnapshot",
    "RepricingMode",
    "SimulationResult",
    "ProductListFilters",
    "ProductListResult",
    "ProductRecord",
]
