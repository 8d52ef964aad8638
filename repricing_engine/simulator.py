"""
Simulation de prix pour le moteur de repricing.

Fonctions pures : aucune lecture ni écriture en base. Les appelants
persistent explicitement les résultats (brouillons, historique).

Formules :
- new_net = net * (1 + delta)
- new_gross = new_net * (1 + vat_rate)
- new_margin_pct = (new_net - cost) / new_net * 100
"""

import math
from typing import Optional

from .errors import InvalidAdjustment, MissingPricing
from .models.pricing import PricingSnapshot, SimulationResult


def compute_gross(net: float, vat_rate: float) -> float:
    return net * (1 + vat_rate)


def compute_margin_pct(net: Optional[float], cost: Optional[float]) -> Optional[float]:
    """Marge en points ; None si net <= 0 ou donnée manquante (jamais de division par zéro)."""
    if net is None or cost is None or net <= 0:
        return None
    return (net - cost) / net * 100


def _require_base(snapshot: PricingSnapshot) -> None:
    if snapshot.net is None or snapshot.net <= 0:
        raise MissingPricing(snapshot.product_id, snapshot.channel, missing="net")
    if snapshot.cost_eur is None:
        raise MissingPricing(snapshot.product_id, snapshot.channel, missing="cost")


def _build_result(
    snapshot: PricingSnapshot,
    new_net: float,
    notes: Optional[str] = None,
) -> SimulationResult:
    if not math.isfinite(new_net) or new_net <= 0:
        raise InvalidAdjustment(
            f"Simulated net price must be > 0 (got {new_net}) for product {snapshot.product_id}",
            details={"product_id": snapshot.product_id, "new_net": new_net},
        )
    return SimulationResult(
        new_net=new_net,
        new_gross=compute_gross(new_net, snapshot.vat_rate),
        new_margin_pct=compute_margin_pct(new_net, snapshot.cost_eur),
        delta=new_net / snapshot.net - 1,
        notes=notes,
    )


def simulate(snapshot: PricingSnapshot, proposed_net_delta: float) -> SimulationResult:
    """
    Simule une variation relative du prix net.

    `proposed_net_delta` est une fraction (0.05 = +5 %). Un prix net résultant
    <= 0 lève `InvalidAdjustment`.
    """
    _require_base(snapshot)

    if proposed_net_delta is None or not math.isfinite(proposed_net_delta):
        raise InvalidAdjustment(
            f"Invalid adjustment fraction: {proposed_net_delta}",
            details={"product_id": snapshot.product_id},
        )

    new_net = snapshot.net * (1 + proposed_net_delta)
    result = _build_result(snapshot, new_net)
    # Le delta demandé est conservé tel quel (pas de recalcul arrondi)
    result.delta = proposed_net_delta
    return result


def simulate_scenario(
    snapshot: PricingSnapshot,
    override_net: Optional[float] = None,
    discount_pct: Optional[float] = None,
    target_margin_pct: Optional[float] = None,
) -> SimulationResult:
    """
    Simule un scénario exprimé en prix cible plutôt qu'en fraction.

    Priorité des paramètres :
    1. `override_net` : prix net imposé,
    2. `discount_pct` : remise en % sur le prix net actuel,
    3. `target_margin_pct` : prix net tel que la marge atteigne la cible
       (net = coût / (1 - marge)).
    Sans paramètre, le prix actuel est simulé tel quel.
    """
    _require_base(snapshot)

    if override_net is not None:
        new_net = float(override_net)
    elif discount_pct is not None:
        new_net = snapshot.net * (1 - discount_pct / 100)
    elif target_margin_pct is not None:
        m = target_margin_pct / 100
        if m >= 1:
            raise InvalidAdjustment(
                f"Target margin must be below 100% (got {target_margin_pct})",
                details={"product_id": snapshot.product_id, "target_margin_pct": target_margin_pct},
            )
        new_net = snapshot.cost_eur / (1 - m)
    else:
        new_net = snapshot.net

    result = _build_result(snapshot, new_net)
    if target_margin_pct is not None:
        simulated = f"{result.new_margin_pct:.2f}" if result.new_margin_pct is not None else "n/a"
        result.notes = f"Target margin {target_margin_pct}% vs simulated {simulated}%"
    return result
