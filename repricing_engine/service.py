"""
Façade du moteur de repricing.

`RepricingService` assemble les composants (resolver, simulateur, moteur
de règles, ledger, conseil, catalogue) autour de deux repositories passés
explicitement. C'est le point d'entrée du serveur JSON et des scripts.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .advisor import PricingAdvisor
from .catalog import ProductCatalog
from .config import RepricingConfig, get_repricing_config_for_channel
from .interfaces.ports import PricingRepositoryPort, ProductRepositoryPort
from .ledger import DraftLedger
from .locks import ProductLockRegistry
from .matrix import build_pricing_matrix
from .models.pricing import (
    BatchResult,
    CompetitorComparison,
    PriceDraft,
    PricingAdvice,
    PricingComponents,
    PricingMatrix,
    PricingSnapshot,
    RepricingMode,
    SimulationResult,
    normalize_channel,
)
from .models.product import ProductListFilters, ProductListResult, ProductRecord
from .policy import RepricingPolicyEngine
from .settings import Settings
from .simulator import simulate, simulate_scenario
from .snapshot_resolver import SnapshotResolver

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RepricingService:
    """Point d'entrée unique pour les opérations de pricing."""

    def __init__(
        self,
        pricing_repo: PricingRepositoryPort,
        product_repo: ProductRepositoryPort,
        config: Optional[RepricingConfig] = None,
        default_channel: str = "B2C",
        default_mode: str = "safe",
        currency: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.pricing_repo = pricing_repo
        self.product_repo = product_repo
        self.config = config
        self.default_channel = normalize_channel(default_channel) or "B2C"
        self.default_mode = RepricingMode.parse(default_mode)
        self.currency = currency

        self.locks = ProductLockRegistry()
        self.ledger = DraftLedger(pricing_repo, locks=self.locks, clock=clock)
        self.catalog = ProductCatalog(product_repo, SnapshotResolver(pricing_repo, self.config_for(None)))

        # Handle Supabase éventuel, fermé par `close()`
        self._handle = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RepricingService":
        """Ouvre le client Supabase et construit le service sur les adapters Supabase."""
        # Import local : supabase n'est requis que pour ce chemin
        from .interfaces.data_access import (
            DataAccessHandle,
            SupabasePricingRepository,
            SupabaseProductRepository,
        )

        settings = settings or Settings.from_env()
        handle = DataAccessHandle(settings).open()
        service = cls(
            SupabasePricingRepository(handle),
            SupabaseProductRepository(handle),
            default_channel=settings.default_channel,
            default_mode=settings.default_mode,
            currency=settings.base_currency,
        )
        service._handle = handle
        return service

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "RepricingService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def config_for(self, channel: Optional[str]) -> RepricingConfig:
        config = self.config or get_repricing_config_for_channel(channel or self.default_channel)
        if self.currency:
            config = replace(config, default_currency=self.currency)
        return config

    def _channel(self, channel: Optional[str]) -> str:
        return normalize_channel(channel) or self.default_channel

    def _resolver(self, channel: str) -> SnapshotResolver:
        return SnapshotResolver(self.pricing_repo, self.config_for(channel))

    # ------------------------------------------------------------------
    # Repricing
    # ------------------------------------------------------------------

    def reprice(
        self,
        mode: Optional[str] = None,
        channel: Optional[str] = None,
        product_ids: Optional[Sequence[str]] = None,
    ) -> BatchResult:
        """Lance un batch de repricing sur le catalogue (ou sur `product_ids`)."""
        mode = RepricingMode.parse(mode) if mode is not None else self.default_mode
        channel = self._channel(channel)
        engine = RepricingPolicyEngine(
            self.pricing_repo,
            ledger=self.ledger,
            config=self.config_for(channel),
            locks=self.locks,
            product_repo=self.product_repo,
        )
        if product_ids is None:
            return engine.run(mode=mode, channel=channel)
        return engine.run_for_products(product_ids, mode=mode, channel=channel)

    def snapshot(self, product_id: str, channel: Optional[str] = None) -> PricingSnapshot:
        channel = self._channel(channel)
        return self._resolver(channel).resolve(product_id, channel)

    def simulate(
        self,
        product_id: str,
        channel: Optional[str] = None,
        delta: Optional[float] = None,
        override_net: Optional[float] = None,
        discount_pct: Optional[float] = None,
        target_margin_pct: Optional[float] = None,
    ) -> Tuple[PricingSnapshot, SimulationResult]:
        """
        Simule un changement de prix sans rien écrire.

        `delta` (fraction) est prioritaire ; sinon le scénario
        prix imposé / remise / marge cible est utilisé.
        """
        base = self.snapshot(product_id, channel)
        if delta is not None:
            return base, simulate(base, delta)
        simulated = simulate_scenario(
            base,
            override_net=override_net,
            discount_pct=discount_pct,
            target_margin_pct=target_margin_pct,
        )
        return base, simulated

    # ------------------------------------------------------------------
    # Brouillons
    # ------------------------------------------------------------------

    def create_draft(
        self,
        product_id: str,
        channel: Optional[str],
        new_net: float,
        created_by: str,
        notes: Optional[str] = None,
    ) -> Tuple[PriceDraft, bool]:
        """Brouillon manuel : l'état avant/après est calculé depuis le snapshot courant."""
        base, simulated = self.simulate(product_id, channel, override_net=new_net)
        return self.ledger.create_draft(
            product_id=product_id,
            channel=base.channel,
            old_net=base.net,
            old_gross=base.gross,
            old_margin_pct=base.margin_pct,
            new_net=simulated.new_net,
            new_gross=simulated.new_gross,
            new_margin_pct=simulated.new_margin_pct,
            change_pct=simulated.delta * 100,
            notes=notes,
            created_by=created_by,
        )

    def approve_draft(self, draft_id: str, approver_id: str) -> Dict[str, Any]:
        return self.ledger.approve(draft_id, approver_id)

    def reject_draft(self, draft_id: str, approver_id: str) -> PriceDraft:
        return self.ledger.reject(draft_id, approver_id)

    def list_pending_drafts(self, product_id: Optional[str] = None) -> List[PriceDraft]:
        return self.ledger.list_pending(product_id)

    # ------------------------------------------------------------------
    # Conseil et apprentissage
    # ------------------------------------------------------------------

    def advice(self, product_id: str, channel: Optional[str] = None) -> Optional[PricingAdvice]:
        channel = self._channel(channel)
        return PricingAdvisor(self.pricing_repo, self.config_for(channel)).advise(product_id, channel)

    def compare_competitors(self, product_id: str, channel: Optional[str] = None) -> CompetitorComparison:
        channel = self._channel(channel)
        return PricingAdvisor(self.pricing_repo, self.config_for(channel)).compare_competitors(product_id, channel)

    def pricing_matrix(self, product_id: Optional[str] = None, sku: Optional[str] = None) -> PricingMatrix:
        """
        Prix recommandé par canal selon les bandes de marge cibles.

        Le produit est cherché par id ou SKU (`ProductNotFound` s'il n'existe
        pas) ; sans fiche tarifaire, chaque canal signale les données manquantes.
        """
        product = self.catalog.get(product_id=product_id, sku=sku)
        components = self.pricing_repo.get_pricing_snapshot(product.id, self.default_channel)
        if components is None:
            components = PricingComponents(product_id=product.id)
        return build_pricing_matrix(components, self.config_for(None))

    def record_outcome(
        self,
        product_id: str,
        channel: Optional[str],
        period: str,
        sales_change_pct: Optional[float] = None,
        stock_change_pct: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Enregistre l'effet observé d'un changement de prix (journal d'apprentissage)."""
        if not product_id:
            raise ValueError("product_id is required")
        if not period:
            raise ValueError("period is required")
        channel = self._channel(channel)
        self.pricing_repo.record_learning_signal(
            product_id,
            channel,
            period,
            sales_change_pct=sales_change_pct,
            stock_change_pct=stock_change_pct,
            notes=notes,
        )
        logger.info(f"[Learning] Outcome recorded for product {product_id} ({channel}, {period})")

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def get_product(self, product_id: Optional[str] = None, sku: Optional[str] = None) -> ProductRecord:
        return self.catalog.get(product_id=product_id, sku=sku)

    def get_product_detail(self, product_id: str) -> Dict[str, Any]:
        return self.catalog.get_detail_with_pricing(product_id)

    def list_products(self, filters: Optional[ProductListFilters] = None) -> ProductListResult:
        return self.catalog.list(filters)

    def import_product(self, payload: Optional[Dict[str, Any]]) -> str:
        return self.catalog.upsert_from_import(payload)
