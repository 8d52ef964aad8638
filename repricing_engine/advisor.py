"""
Conseil tarifaire et comparaison concurrentielle.

Contrairement au moteur de repricing, ces lectures tolèrent une fiche
incomplète : elles signalent le manque au lieu d'échouer.
"""

import logging
from typing import Optional

from .config import RepricingConfig, get_default_repricing_config
from .interfaces.ports import PricingRepositoryPort
from .models.pricing import (
    CHANNEL_PRICE_FIELDS,
    CompetitorComparison,
    PricingAdvice,
    PricingComponents,
    PricingSnapshot,
    normalize_channel,
)
from .simulator import compute_gross, compute_margin_pct
from .snapshot_resolver import resolve_channel_net, resolve_cost

logger = logging.getLogger(__name__)

LOW_MARGIN_PCT = 25.0
GAP_WARNING_PCT = 10.0


def _fmt(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "n/a"


def compute_advice_score(snapshot: PricingSnapshot) -> int:
    """
    Score 0-100 : marge x 1.5, pondérée par la complétude des prix
    (1 si net et TTC connus, 0.4 sinon).
    """
    margin = snapshot.margin_pct or 0.0
    completeness = 1.0 if snapshot.net is not None and snapshot.gross is not None else 0.4
    score = min(100.0, max(0.0, margin * 1.5 * completeness))
    return int(round(score))


def build_gap_warning(base_net: float, competitor_net: float, currency: str) -> Optional[str]:
    """Message si l'écart avec le concurrent le moins cher dépasse 10 %."""
    if not base_net:
        return None
    gap_pct = (competitor_net - base_net) / base_net * 100
    if gap_pct < -GAP_WARNING_PCT:
        return f"We are {-gap_pct:.1f}% above competitor in {currency}"
    if gap_pct > GAP_WARNING_PCT:
        return f"We are {gap_pct:.1f}% below competitor in {currency}"
    return None


def build_lenient_snapshot(
    components: PricingComponents, channel: str, config: Optional[RepricingConfig] = None
) -> PricingSnapshot:
    """Comme `build_snapshot`, mais laisse à None ce qui manque au lieu de lever."""
    config = config or get_default_repricing_config()
    channel = normalize_channel(channel)

    vat_pct = components.vat_pct if components.vat_pct is not None else config.default_vat_pct
    vat_rate = vat_pct / 100
    net = resolve_channel_net(components, channel, vat_rate) if channel in CHANNEL_PRICE_FIELDS else None
    cost = resolve_cost(components)

    return PricingSnapshot(
        product_id=components.product_id,
        channel=channel,
        net=net,
        gross=compute_gross(net, vat_rate) if net is not None else None,
        margin_pct=compute_margin_pct(net, cost),
        cost_eur=cost,
        vat_rate=vat_rate,
        currency=config.default_currency,
        components=components.as_dict(),
    )


class PricingAdvisor:
    """Lectures de conseil sur un produit (aucune écriture)."""

    def __init__(self, pricing_repo: PricingRepositoryPort, config: Optional[RepricingConfig] = None):
        self.pricing_repo = pricing_repo
        self.config = config or get_default_repricing_config()

    def lenient_snapshot(self, product_id: str, channel: str) -> Optional[PricingSnapshot]:
        """
        Snapshot éventuellement partiel (champs à None), ou None si le produit
        n'a aucune fiche tarifaire.
        """
        channel = normalize_channel(channel)
        components = self.pricing_repo.get_pricing_snapshot(product_id, channel)
        if components is None:
            return None
        return build_lenient_snapshot(components, channel, self.config)

    def advise(self, product_id: str, channel: str) -> Optional[PricingAdvice]:
        snapshot = self.lenient_snapshot(product_id, channel)
        if snapshot is None:
            logger.info(f"[Advisor] No pricing for product {product_id}, no advice")
            return None

        advice = PricingAdvice(
            ai_score=compute_advice_score(snapshot),
            evaluation=f"Channel {snapshot.channel} net={_fmt(snapshot.net)} margin={_fmt(snapshot.margin_pct)}",
        )

        if (snapshot.margin_pct or 0.0) < LOW_MARGIN_PCT:
            advice.risks.append("Low margin; consider price increase or cost optimization.")
            advice.suggestions.append("Raise net price modestly or reduce COGS.")
        else:
            advice.opportunities.append("Margin is healthy; room for promotions.")
            advice.suggestions.append("Test targeted discounts to boost volume.")

        if not snapshot.net:
            advice.risks.append("Net price missing; pricing data incomplete.")
            advice.suggestions.append("Ingest pricing data for this channel.")

        return advice

    def compare_competitors(self, product_id: str, channel: Optional[str] = None) -> CompetitorComparison:
        """Prix concurrents du produit, concurrent le moins cher et alerte d'écart."""
        channel = normalize_channel(channel) or "B2C"
        snapshot = self.lenient_snapshot(product_id, channel)
        base_net = snapshot.net if snapshot else None
        competitors = self.pricing_repo.list_competitor_prices(product_id, channel)

        comparison = CompetitorComparison(
            product_id=product_id,
            channel=channel,
            base_net=base_net,
            base_currency=self.config.default_currency,
            competitors=competitors,
        )

        priced = [c for c in competitors if c.net_price is not None]
        if priced:
            cheapest = min(priced, key=lambda c: c.net_price)
            comparison.cheapest_competitor = cheapest.competitor_name
            if base_net is not None:
                comparison.price_gap_warning = build_gap_warning(
                    base_net, cheapest.net_price, comparison.base_currency
                )
        return comparison
