"""
Matrice de prix par canal.

Pour chaque canal connu, compare la marge courante à la bande de marge
cible du canal (`CHANNEL_TARGET_MARGINS`) et recommande un prix net :
- marge sous la bande : net = coût / (1 - milieu de bande) ;
- marge dans la bande : net inchangé ;
- marge au-dessus : max(coût / (1 - bas de bande), net x 0.95).

Lecture seule : la matrice ne crée ni brouillon ni écriture de prix.
"""

import logging
from typing import List, Optional, Tuple

from .advisor import build_lenient_snapshot
from .config import (
    ABOVE_BAND_REDUCTION,
    CHANNEL_TARGET_MARGINS,
    RepricingConfig,
    get_default_repricing_config,
)
from .models.pricing import CHANNELS, PricingComponents, PricingMatrix, PricingMatrixRow
from .simulator import compute_gross, compute_margin_pct
from .snapshot_resolver import resolve_cost

logger = logging.getLogger(__name__)

MISSING_DATA_NOTE = "Missing cost or price data. Cannot compute recommended price."


def compute_recommended_net(
    channel: str,
    base_cost: Optional[float],
    current_net: Optional[float],
    current_margin_pct: Optional[float],
) -> Tuple[Optional[float], List[str]]:
    """Prix net recommandé pour un canal, avec les notes explicatives."""
    if base_cost is None or current_net is None or current_margin_pct is None:
        return None, ["Insufficient data to compute recommended price."]

    band = CHANNEL_TARGET_MARGINS.get(channel)
    if band is None:
        return current_net, ["No target margin band defined for this channel."]

    min_margin, max_margin = band
    band_label = f"[{min_margin:g}-{max_margin:g}]%"

    if current_margin_pct < min_margin:
        mid_margin = (min_margin + max_margin) / 2
        note = f"Margin ({current_margin_pct:.1f}%) below target band {band_label}. Recommending price increase."
        return base_cost / (1 - mid_margin / 100), [note]

    if current_margin_pct > max_margin:
        lower_bound_net = base_cost / (1 - min_margin / 100)
        reduced_net = current_net * (1 - ABOVE_BAND_REDUCTION)
        note = (
            f"Margin ({current_margin_pct:.1f}%) above optimal band {band_label}. "
            "Recommending slight price decrease."
        )
        return max(lower_bound_net, reduced_net), [note]

    return current_net, [f"Margin ({current_margin_pct:.1f}%) within optimal band {band_label}."]


def build_matrix_row(
    components: PricingComponents, channel: str, config: Optional[RepricingConfig] = None
) -> PricingMatrixRow:
    snapshot = build_lenient_snapshot(components, channel, config)
    row = PricingMatrixRow(
        channel=snapshot.channel,
        current_net=snapshot.net,
        current_gross=snapshot.gross,
        current_margin_pct=snapshot.margin_pct,
    )

    if snapshot.net is None or snapshot.cost_eur is None:
        row.notes.append(MISSING_DATA_NOTE)
        return row

    recommended_net, notes = compute_recommended_net(
        snapshot.channel, snapshot.cost_eur, snapshot.net, snapshot.margin_pct
    )
    row.notes.extend(notes)
    if recommended_net is not None:
        row.recommended_net = recommended_net
        row.recommended_gross = compute_gross(recommended_net, snapshot.vat_rate)
        row.recommended_margin_pct = compute_margin_pct(recommended_net, snapshot.cost_eur)
        row.change_pct = (recommended_net - snapshot.net) / snapshot.net * 100
    return row


def build_pricing_matrix(
    components: PricingComponents, config: Optional[RepricingConfig] = None
) -> PricingMatrix:
    """Une ligne par canal, même quand le canal n'a pas de prix."""
    config = config or get_default_repricing_config()
    matrix = PricingMatrix(product_id=components.product_id, base_cost=resolve_cost(components))
    for channel in CHANNELS:
        matrix.rows.append(build_matrix_row(components, channel, config))

    recommended = sum(1 for r in matrix.rows if r.recommended_net is not None)
    logger.info(
        f"[Matrix] Product {components.product_id}: {recommended}/{len(matrix.rows)} channels with a recommendation"
    )
    return matrix
