"""
Construction des snapshots de prix normalisés.

Le resolver lit la fiche tarifaire brute via `PricingRepositoryPort` et
produit un `PricingSnapshot` complet et cohérent, ou lève `MissingPricing`.
Il ne renvoie jamais de snapshot partiel ni de prix à zéro.
"""

import logging
from typing import Optional

from .config import RepricingConfig, get_default_repricing_config
from .errors import MissingPricing
from .interfaces.ports import PricingRepositoryPort
from .models.pricing import (
    CHANNEL_PRICE_FIELDS,
    COST_COMPONENT_FIELDS,
    PricingComponents,
    PricingSnapshot,
    normalize_channel,
)
from .simulator import compute_gross, compute_margin_pct

logger = logging.getLogger(__name__)


def resolve_channel_net(
    components: PricingComponents, channel: str, vat_rate: float
) -> Optional[float]:
    """
    Prix net du canal.

    Premier champ net renseigné ; à défaut, le premier TTC renseigné du canal
    ramené en net (B2C : b2c_store_inc puis uvp_inc).
    """
    net_fields, gross_fields = CHANNEL_PRICE_FIELDS[channel]
    for name in net_fields:
        value = getattr(components, name)
        if value is not None:
            return value

    for name in gross_fields:
        gross = getattr(components, name)
        if gross is not None:
            return gross / (1 + vat_rate)
    return None


def resolve_cost(components: PricingComponents) -> Optional[float]:
    """
    Coût de revient complet, à défaut COGS, à défaut la somme des coûts
    unitaires détaillés (seulement si elle est strictement positive).
    """
    if components.full_cost_eur is not None:
        return components.full_cost_eur
    if components.cogs_eur is not None:
        return components.cogs_eur

    component_sum = sum(getattr(components, name) or 0.0 for name in COST_COMPONENT_FIELDS)
    return component_sum if component_sum > 0 else None


def build_snapshot(
    components: PricingComponents,
    channel: str,
    config: Optional[RepricingConfig] = None,
) -> PricingSnapshot:
    """Convertit une fiche brute en snapshot ; lève `MissingPricing` si incomplet."""
    config = config or get_default_repricing_config()
    product_id = components.product_id
    channel = normalize_channel(channel)

    if channel not in CHANNEL_PRICE_FIELDS:
        raise MissingPricing(product_id, channel, missing="channel")

    vat_pct = components.vat_pct if components.vat_pct is not None else config.default_vat_pct
    vat_rate = vat_pct / 100

    net = resolve_channel_net(components, channel, vat_rate)
    if net is None or net <= 0:
        raise MissingPricing(product_id, channel, missing="net")

    cost = resolve_cost(components)
    if cost is None:
        raise MissingPricing(product_id, channel, missing="cost")

    return PricingSnapshot(
        product_id=product_id,
        channel=channel,
        net=net,
        gross=compute_gross(net, vat_rate),
        margin_pct=compute_margin_pct(net, cost),
        cost_eur=cost,
        vat_rate=vat_rate,
        currency=config.default_currency,
        components=components.as_dict(),
    )


class SnapshotResolver:
    """Résout `(product_id, channel)` en `PricingSnapshot`."""

    def __init__(
        self,
        pricing_repo: PricingRepositoryPort,
        config: Optional[RepricingConfig] = None,
    ):
        self.pricing_repo = pricing_repo
        self.config = config or get_default_repricing_config()

    def resolve(self, product_id: str, channel: str) -> PricingSnapshot:
        channel = normalize_channel(channel)
        components = self.pricing_repo.get_pricing_snapshot(product_id, channel)
        if components is None:
            raise MissingPricing(product_id, channel, missing="pricing")
        return build_snapshot(components, channel, self.config)

    def try_resolve(self, product_id: str, channel: str) -> Optional[PricingSnapshot]:
        """Variante tolérante : None au lieu de `MissingPricing`."""
        try:
            return self.resolve(product_id, channel)
        except MissingPricing as e:
            logger.info(f"[Resolver] {e.message}")
            return None
