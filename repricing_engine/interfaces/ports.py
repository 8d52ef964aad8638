"""
Contrats d'accès aux données du moteur de repricing.

Le moteur ne parle jamais directement à la base : il reçoit en paramètre
une implémentation de ces ports (Supabase en production, mémoire pour
les tests et les runs locaux).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from ..models.pricing import (
    CompetitorObservation,
    DraftStatus,
    PriceDraft,
    PricingComponents,
)
from ..models.product import ProductListFilters, ProductListResult, ProductRecord


class ProductRepositoryPort(ABC):
    """Accès au catalogue produit."""

    @abstractmethod
    def find_by_id_or_sku(
        self, product_id: Optional[str] = None, sku: Optional[str] = None
    ) -> Optional[ProductRecord]:
        """Retourne le produit correspondant à l'ID ou au SKU, ou None."""

    @abstractmethod
    def list(self, filters: ProductListFilters) -> ProductListResult:
        """Liste paginée des produits (filtres déjà normalisés)."""

    @abstractmethod
    def upsert_from_import(self, payload: Dict[str, Any]) -> str:
        """Crée ou met à jour un produit depuis un import, retourne son ID."""

    @abstractmethod
    def list_ids(self) -> List[str]:
        """IDs de tous les produits, dans un ordre stable (pour les batchs)."""


class PricingRepositoryPort(ABC):
    """Accès aux fiches tarifaires, concurrents, brouillons et historiques."""

    @abstractmethod
    def get_pricing_snapshot(
        self, product_id: str, channel: str, region: Optional[str] = None
    ) -> Optional[PricingComponents]:
        """Fiche tarifaire brute du produit, ou None si aucune n'existe."""

    @abstractmethod
    def list_competitor_prices(
        self, product_id: str, channel: Optional[str] = None
    ) -> List[CompetitorObservation]:
        """Observations concurrentes (éventuellement vide)."""

    @abstractmethod
    def create_price_draft(
        self,
        product_id: str,
        channel: str,
        old_net: Optional[float],
        old_gross: Optional[float],
        old_margin_pct: Optional[float],
        new_net: Optional[float],
        new_gross: Optional[float],
        new_margin_pct: Optional[float],
        change_pct: Optional[float],
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> PriceDraft:
        """Insère un brouillon `pending` et le retourne avec son ID."""

    @abstractmethod
    def get_price_draft(self, draft_id: str) -> Optional[PriceDraft]:
        ...

    @abstractmethod
    def find_draft_for_day(self, product_id: str, channel: str, day: date) -> Optional[PriceDraft]:
        """Premier brouillon créé le jour `day` (UTC) pour ce produit et ce canal."""

    @abstractmethod
    def list_price_drafts(
        self, product_id: Optional[str] = None, status: Optional[DraftStatus] = None
    ) -> List[PriceDraft]:
        ...

    @abstractmethod
    def approve_price_draft(self, draft_id: str, approved_by: str) -> Optional[PriceDraft]:
        """
        Passe un brouillon de `pending` à `approved`.

        Retourne None si le brouillon n'était plus `pending` au moment de
        l'écriture (transition conditionnelle sur le statut).
        """

    @abstractmethod
    def reject_price_draft(self, draft_id: str, rejected_by: str) -> Optional[PriceDraft]:
        """Même contrat que `approve_price_draft`, vers `rejected`."""

    @abstractmethod
    def update_live_price(self, product_id: str, channel: str, net: float, gross: Optional[float]) -> None:
        """Écrit le prix net/TTC du canal dans la fiche tarifaire active."""

    @abstractmethod
    def record_pricing_history(
        self,
        product_id: str,
        channel: str,
        old_net: Optional[float] = None,
        new_net: Optional[float] = None,
        margin_before: Optional[float] = None,
        margin_after: Optional[float] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...

    @abstractmethod
    def record_learning_signal(
        self,
        product_id: str,
        channel: str,
        period: str,
        sales_change_pct: Optional[float] = None,
        stock_change_pct: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        ...
