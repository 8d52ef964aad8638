"""
Moteur de règles de repricing.

Pour chaque produit (indépendamment des autres) :
1. snapshot incomplet -> `missing_pricing`, produit ignoré ;
2. ajustement de base selon la marge (première bande qui correspond) :
   marge < 25 % -> +10 %, < 30 % -> +5 %, > 55 % -> -8 %, sinon 0 ;
3. ajustement concurrentiel, additif, si au moins un prix concurrent :
   net > moyenne x 1.15 -> -5 %, net < moyenne x 0.85 -> +5 %
   (les deux tests sont indépendants) ;
4. mode "safe" : borne à [-6 %, +6 %], mode "auto" : pas de borne ;
5. |ajustement| < 1 % -> `tiny_change`, pas de brouillon ;
6. sinon simulation + brouillon "AI Auto-Repricing" ;
7. mode "auto" : écriture directe du prix actif après le brouillon, y compris
   quand un brouillon du jour existait déjà (il est alors renvoyé tel quel).
   Les deux écritures ne sont pas atomiques : un échec de la seconde est
   loggé, le brouillon reste en place.
8. toute erreur sur un produit devient une décision `error`, le batch continue.

Les décisions et brouillons suivent l'ordre d'entrée.
"""

import logging
from typing import Callable, Iterable, Mapping, Optional, Sequence, Tuple

from .config import RepricingConfig, get_default_repricing_config
from .errors import MissingPricing, ProcessingError
from .interfaces.ports import PricingRepositoryPort, ProductRepositoryPort
from .ledger import DraftLedger
from .locks import ProductLockRegistry
from .models.pricing import (
    AdjustmentReason,
    BatchResult,
    CompetitorObservation,
    PriceAdjustmentDecision,
    PriceDraft,
    PricingSnapshot,
    RepricingMode,
    normalize_channel,
)
from .simulator import simulate
from .snapshot_resolver import SnapshotResolver

logger = logging.getLogger(__name__)

DRAFT_CREATED_BY = "ai-repricing"

Evaluation = Tuple[PriceAdjustmentDecision, Optional[PriceDraft]]


def base_margin_adjustment(margin_pct: float, config: Optional[RepricingConfig] = None) -> float:
    """Ajustement issu des bandes de marge (non chevauchantes, première correspondance)."""
    config = config or get_default_repricing_config()
    if margin_pct < config.margin_low_threshold_pct:
        return config.margin_low_adjustment
    if margin_pct < config.margin_mid_threshold_pct:
        return config.margin_mid_adjustment
    if margin_pct > config.margin_high_threshold_pct:
        return config.margin_high_adjustment
    return 0.0


def competitor_average(observations: Iterable[CompetitorObservation]) -> Optional[float]:
    """Moyenne des prix nets concurrents renseignés, None s'il n'y en a aucun."""
    prices = [o.net_price for o in observations if o.net_price is not None]
    if not prices:
        return None
    return sum(prices) / len(prices)


def competitor_gap_adjustment(
    net: float,
    observations: Sequence[CompetitorObservation],
    config: Optional[RepricingConfig] = None,
) -> float:
    config = config or get_default_repricing_config()
    avg = competitor_average(observations)
    if avg is None:
        return 0.0

    adjustment = 0.0
    # Deux tests indépendants (pas de elif)
    if net > avg * config.competitor_expensive_ratio:
        adjustment += config.competitor_expensive_adjustment
    if net < avg * config.competitor_cheap_ratio:
        adjustment += config.competitor_cheap_adjustment
    return adjustment


def clamp_adjustment(
    adjustment: float, mode: RepricingMode, config: Optional[RepricingConfig] = None
) -> float:
    config = config or get_default_repricing_config()
    if mode == RepricingMode.SAFE:
        bound = config.safe_mode_max_adjustment
        return max(min(adjustment, bound), -bound)
    return adjustment


def propose_adjustment(
    snapshot: PricingSnapshot,
    observations: Sequence[CompetitorObservation],
    mode: RepricingMode,
    config: Optional[RepricingConfig] = None,
) -> Tuple[float, AdjustmentReason]:
    """
    Ajustement final (fraction du net) et raison associée.

    La raison vaut `tiny_change` si l'ajustement est sous le seuil minimal,
    sinon `margin_low` / `margin_high` selon la bande de marge, à défaut
    `competitor_gap`.
    """
    config = config or get_default_repricing_config()

    base = base_margin_adjustment(snapshot.margin_pct, config)
    adjustment = base + competitor_gap_adjustment(snapshot.net, observations, config)
    adjustment = clamp_adjustment(adjustment, mode, config)

    if abs(adjustment) < config.min_adjustment:
        return adjustment, AdjustmentReason.TINY_CHANGE
    if base > 0:
        return adjustment, AdjustmentReason.MARGIN_LOW
    if base < 0:
        return adjustment, AdjustmentReason.MARGIN_HIGH
    return adjustment, AdjustmentReason.COMPETITOR_GAP


class RepricingPolicyEngine:
    """
    Évalue des batchs de produits et demande la création des brouillons.

    Les repositories sont passés explicitement au constructeur. Le moteur
    ne modifie jamais un brouillon existant : il passe par le `DraftLedger`.
    """

    def __init__(
        self,
        pricing_repo: PricingRepositoryPort,
        ledger: Optional[DraftLedger] = None,
        config: Optional[RepricingConfig] = None,
        locks: Optional[ProductLockRegistry] = None,
        product_repo: Optional[ProductRepositoryPort] = None,
    ):
        self.pricing_repo = pricing_repo
        self.config = config or get_default_repricing_config()
        if locks is None:
            locks = ledger.locks if ledger is not None else ProductLockRegistry()
        self.locks = locks
        self.ledger = ledger if ledger is not None else DraftLedger(pricing_repo, locks=self.locks)
        self.product_repo = product_repo
        self.resolver = SnapshotResolver(pricing_repo, self.config)

    def evaluate_batch(
        self,
        snapshots: Sequence[PricingSnapshot],
        competitors: Mapping[str, Sequence[CompetitorObservation]],
        mode: RepricingMode = RepricingMode.SAFE,
    ) -> BatchResult:
        """Évalue des snapshots déjà résolus (ordre conservé)."""
        mode = RepricingMode.parse(mode)
        result = BatchResult(mode=mode)

        for snapshot in snapshots:
            observations = list(competitors.get(snapshot.product_id, []))
            self._collect(
                result,
                snapshot.product_id,
                lambda s=snapshot, o=observations: self._evaluate_one(s, o, mode),
            )

        self._log_summary(result)
        return result

    def run(self, mode: RepricingMode = RepricingMode.SAFE, channel: str = "B2C") -> BatchResult:
        """Évalue tout le catalogue (`ProductRepositoryPort.list_ids`)."""
        if self.product_repo is None:
            raise ValueError("A product repository is required to run on the whole catalog")
        return self.run_for_products(self.product_repo.list_ids(), mode=mode, channel=channel)

    def run_for_products(
        self,
        product_ids: Sequence[str],
        mode: RepricingMode = RepricingMode.SAFE,
        channel: str = "B2C",
    ) -> BatchResult:
        """
        Résout puis évalue les produits donnés, dans l'ordre.

        Un produit sans fiche tarifaire exploitable donne `missing_pricing`.
        """
        mode = RepricingMode.parse(mode)
        channel = normalize_channel(channel)

        logger.info(f"[Repricing] Running on {len(product_ids)} products (mode: {mode.value}, channel: {channel})")
        result = BatchResult(mode=mode)
        for product_id in product_ids:
            self._collect(
                result,
                product_id,
                lambda pid=product_id: self._resolve_and_evaluate(pid, channel, mode),
            )

        self._log_summary(result)
        return result

    def _resolve_and_evaluate(self, product_id: str, channel: str, mode: RepricingMode) -> Evaluation:
        # Le prix courant est lu sous le verrou du produit : une approbation
        # concurrente ne peut pas s'intercaler entre la lecture et le brouillon
        with self.locks.hold(product_id):
            try:
                snapshot = self.resolver.resolve(product_id, channel)
            except MissingPricing as e:
                return self._missing(product_id, e.message), None

            observations = self.pricing_repo.list_competitor_prices(product_id)
            return self._evaluate_one(snapshot, observations, mode)

    def _collect(
        self,
        result: BatchResult,
        product_id: str,
        evaluate: Callable[[], Evaluation],
    ) -> None:
        try:
            decision, draft = evaluate()
        except Exception as e:
            error = ProcessingError(product_id, e)
            logger.error(f"[Repricing] {error.message}", exc_info=True)
            decision, draft = (
                PriceAdjustmentDecision(
                    product_id=product_id,
                    adjustment_fraction=0.0,
                    reason=AdjustmentReason.ERROR,
                    message=error.message,
                ),
                None,
            )

        result.decisions.append(decision)
        # Un même brouillon (doublon du jour) n'apparaît qu'une fois
        if draft is not None and all(d.id != draft.id for d in result.drafts):
            result.drafts.append(draft)

    def _missing(self, product_id: str, message: Optional[str] = None) -> PriceAdjustmentDecision:
        return PriceAdjustmentDecision(
            product_id=product_id,
            adjustment_fraction=0.0,
            reason=AdjustmentReason.MISSING_PRICING,
            message=message,
        )

    def _evaluate_one(
        self,
        snapshot: PricingSnapshot,
        observations: Sequence[CompetitorObservation],
        mode: RepricingMode,
    ) -> Evaluation:
        missing = snapshot.missing_fields()
        if missing:
            return self._missing(snapshot.product_id, f"missing: {', '.join(missing)}"), None

        adjustment, reason = propose_adjustment(snapshot, observations, mode, self.config)
        if reason == AdjustmentReason.TINY_CHANGE:
            decision = PriceAdjustmentDecision(
                product_id=snapshot.product_id,
                adjustment_fraction=adjustment,
                reason=reason,
            )
            return decision, None

        simulation = simulate(snapshot, adjustment)

        # Brouillon d'abord, puis prix actif : l'old_net du brouillon reste exact
        with self.locks.hold(snapshot.product_id):
            draft, created = self.ledger.create_draft(
                product_id=snapshot.product_id,
                channel=snapshot.channel,
                old_net=snapshot.net,
                old_gross=snapshot.gross,
                old_margin_pct=snapshot.margin_pct,
                new_net=simulation.new_net,
                new_gross=simulation.new_gross,
                new_margin_pct=simulation.new_margin_pct,
                change_pct=adjustment * 100,
                notes=self.config.draft_notes,
                created_by=DRAFT_CREATED_BY,
            )
            decision = PriceAdjustmentDecision(
                product_id=snapshot.product_id,
                adjustment_fraction=adjustment,
                reason=reason,
                draft_id=draft.id,
            )

            if not created:
                # Le brouillon renvoyé est celui déjà créé aujourd'hui, pas celui de ce run
                decision.message = "duplicate_draft_same_day"

            # En mode auto, le prix actif suit la simulation de ce run, brouillon neuf ou non
            if mode == RepricingMode.AUTO:
                decision.applied = self._apply_live_price(snapshot, simulation.new_net, simulation.new_gross)
                if not decision.applied:
                    decision.message = "live_update_failed"

        return decision, draft

    def _apply_live_price(self, snapshot: PricingSnapshot, new_net: float, new_gross: float) -> bool:
        try:
            self.pricing_repo.update_live_price(snapshot.product_id, snapshot.channel, new_net, new_gross)
            return True
        except Exception as e:
            logger.error(
                f"[Repricing] Draft kept but live price update failed for {snapshot.product_id}: {e}",
                exc_info=True,
            )
            return False

    def _log_summary(self, result: BatchResult) -> None:
        applied = sum(1 for d in result.decisions if d.applied)
        errors = [d for d in result.decisions if d.reason == AdjustmentReason.ERROR]
        logger.info(
            f"[Repricing] Batch done (mode: {result.mode.value}): {len(result.drafts)} drafts, "
            f"{len(result.skipped)} skipped, {applied} applied, {len(errors)} errors"
        )


def evaluate_batch(
    pricing_repo: PricingRepositoryPort,
    snapshots: Sequence[PricingSnapshot],
    competitors: Mapping[str, Sequence[CompetitorObservation]],
    mode: RepricingMode = RepricingMode.SAFE,
    config: Optional[RepricingConfig] = None,
) -> BatchResult:
    """Raccourci fonctionnel autour de `RepricingPolicyEngine.evaluate_batch`."""
    engine = RepricingPolicyEngine(pricing_repo, config=config)
    return engine.evaluate_batch(snapshots, competitors, mode)

