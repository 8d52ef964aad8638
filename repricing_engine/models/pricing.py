"""
Structures de données du moteur de repricing.

Ces dataclasses circulent entre le resolver, le simulateur, le moteur de
règles et le ledger des brouillons. Elles ne connaissent pas la base :
les adapters de `interfaces` se chargent de la conversion depuis/vers
les lignes Supabase.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RepricingMode(str, Enum):
    """Mode d'exécution du moteur."""

    SAFE = "safe"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RepricingMode":
        """`auto` uniquement s'il est demandé explicitement, sinon `safe`."""
        if isinstance(value, RepricingMode):
            return value
        return cls.AUTO if value == cls.AUTO.value else cls.SAFE


class AdjustmentReason(str, Enum):
    MARGIN_LOW = "margin_low"
    MARGIN_HIGH = "margin_high"
    COMPETITOR_GAP = "competitor_gap"
    TINY_CHANGE = "tiny_change"
    MISSING_PRICING = "missing_pricing"
    ERROR = "error"


class DraftStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Coûts unitaires détaillés, additionnés quand ni full_cost_eur ni cogs_eur ne sont connus
COST_COMPONENT_FIELDS = (
    "factory_price_unit",
    "epr_lucid_per_unit",
    "shipping_inbound_per_unit",
    "gs1_per_unit",
    "retail_packaging_per_unit",
    "qc_pif_per_unit",
    "operations_per_unit",
    "marketing_per_unit",
)

# Champs tarifaires bruts tels que stockés par produit
COMPONENT_FIELDS = (
    "cogs_eur",
    "full_cost_eur",
    "uvp_net",
    "uvp_inc",
    "map",
    "vat_pct",
    "b2c_store_net",
    "b2c_store_inc",
    "amazon_net",
    "amazon_inc",
    "dealer_basic_net",
    "dealer_plus_net",
    "stand_partner_net",
    "distributor_net",
) + COST_COMPONENT_FIELDS


# Canal -> (champs net candidats, champs TTC candidats), par ordre de priorité.
# Le premier champ de chaque tuple est celui écrit lors d'une mise à jour du prix actif.
CHANNEL_PRICE_FIELDS: Dict[str, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    "B2C": (("b2c_store_net", "uvp_net"), ("b2c_store_inc", "uvp_inc")),
    "AMAZON": (("amazon_net",), ("amazon_inc",)),
    "DEALER_BASIC": (("dealer_basic_net",), ()),
    "DEALER_PLUS": (("dealer_plus_net",), ()),
    "STAND": (("stand_partner_net",), ()),
    "DISTRIBUTOR": (("distributor_net",), ()),
}
CHANNELS = tuple(CHANNEL_PRICE_FIELDS)
CHANNEL_ALIASES = {"DEFAULT": "B2C"}


def normalize_channel(channel: Optional[str]) -> str:
    value = (channel or "").strip().upper()
    return CHANNEL_ALIASES.get(value, value)


@dataclass
class PricingComponents:
    """
    Fiche tarifaire brute d'un produit (tous canaux confondus).

    Format volontairement proche de la table `product_pricing`.
    """

    product_id: str
    cogs_eur: Optional[float] = None
    full_cost_eur: Optional[float] = None
    uvp_net: Optional[float] = None
    uvp_inc: Optional[float] = None
    map: Optional[float] = None
    vat_pct: Optional[float] = None
    b2c_store_net: Optional[float] = None
    b2c_store_inc: Optional[float] = None
    amazon_net: Optional[float] = None
    amazon_inc: Optional[float] = None
    dealer_basic_net: Optional[float] = None
    dealer_plus_net: Optional[float] = None
    stand_partner_net: Optional[float] = None
    distributor_net: Optional[float] = None
    factory_price_unit: Optional[float] = None
    epr_lucid_per_unit: Optional[float] = None
    shipping_inbound_per_unit: Optional[float] = None
    gs1_per_unit: Optional[float] = None
    retail_packaging_per_unit: Optional[float] = None
    qc_pif_per_unit: Optional[float] = None
    operations_per_unit: Optional[float] = None
    marketing_per_unit: Optional[float] = None

    def as_dict(self) -> Dict[str, Optional[float]]:
        return {name: getattr(self, name) for name in COMPONENT_FIELDS}


@dataclass
class PricingSnapshot:
    """
    Vue normalisée du prix d'un produit sur un canal.

    Invariants quand le snapshot est complet :
    - gross = net * (1 + vat_rate)
    - margin_pct = (net - cost) / net * 100 si net > 0, sinon None
    """

    product_id: str
    channel: str
    net: Optional[float]
    gross: Optional[float]
    margin_pct: Optional[float]
    cost_eur: Optional[float]
    vat_rate: float = 0.19
    currency: str = "EUR"
    components: Dict[str, Optional[float]] = field(default_factory=dict)

    def missing_fields(self) -> List[str]:
        missing = []
        for name in ("net", "gross", "margin_pct", "cost_eur"):
            value = getattr(self, name)
            if value is None or not math.isfinite(value):
                missing.append(name)
        if self.net is not None and self.net <= 0 and "net" not in missing:
            missing.append("net")
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CompetitorObservation:
    competitor_name: str
    net_price: Optional[float]
    currency: str = "EUR"
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SimulationResult:
    """Résultat d'une simulation de prix (aucune écriture)."""

    new_net: float
    new_gross: float
    new_margin_pct: Optional[float]
    delta: float
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PriceAdjustmentDecision:
    """
    Décision éphémère du moteur de règles pour un produit.

    N'est jamais persistée telle quelle : elle alimente un brouillon.
    """

    product_id: str
    adjustment_fraction: float
    reason: AdjustmentReason
    applied: bool = False
    draft_id: Optional[str] = None
    message: Optional[str] = None

    @property
    def drafted(self) -> bool:
        return self.draft_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "adjustment_fraction": self.adjustment_fraction,
            "reason": self.reason.value,
            "applied": self.applied,
            "draft_id": self.draft_id,
            "message": self.message,
        }


@dataclass
class PriceDraft:
    """Proposition de changement de prix, en attente d'approbation."""

    id: str
    product_id: str
    channel: str
    old_net: Optional[float]
    old_gross: Optional[float]
    old_margin_pct: Optional[float]
    new_net: Optional[float]
    new_gross: Optional[float]
    new_margin_pct: Optional[float]
    change_pct: Optional[float]
    notes: Optional[str]
    created_at: datetime
    status: DraftStatus = DraftStatus.PENDING
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == DraftStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["created_at"] = self.created_at.isoformat()
        data["approved_at"] = self.approved_at.isoformat() if self.approved_at else None
        return data


@dataclass
class BatchResult:
    """Sortie de `evaluate_batch` : décisions et brouillons, dans l'ordre d'entrée."""

    mode: RepricingMode
    decisions: List[PriceAdjustmentDecision] = field(default_factory=list)
    drafts: List[PriceDraft] = field(default_factory=list)

    @property
    def skipped(self) -> List[PriceAdjustmentDecision]:
        return [d for d in self.decisions if not d.drafted]

    def to_response(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "mode": self.mode.value,
            "drafts": [d.to_dict() for d in self.drafts],
            "skipped": [
                {"product_id": d.product_id, "reason": d.reason.value}
                for d in self.skipped
            ],
        }


@dataclass
class CompetitorComparison:
    product_id: str
    channel: Optional[str]
    base_net: Optional[float]
    base_currency: str
    competitors: List[CompetitorObservation] = field(default_factory=list)
    cheapest_competitor: Optional[str] = None
    price_gap_warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["competitors"] = [c.to_dict() for c in self.competitors]
        return data


@dataclass
class PricingAdvice:
    ai_score: int
    evaluation: str
    risks: List[str] = field(default_factory=list)
    opportunities: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PricingMatrixRow:
    """Prix courant et prix recommandé d'un produit sur un canal."""

    channel: str
    current_net: Optional[float]
    current_gross: Optional[float]
    current_margin_pct: Optional[float]
    recommended_net: Optional[float] = None
    recommended_gross: Optional[float] = None
    recommended_margin_pct: Optional[float] = None
    change_pct: Optional[float] = None
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        recommended = None
        if self.recommended_net is not None:
            recommended = {
                "net": self.recommended_net,
                "gross": self.recommended_gross,
                "margin_pct": self.recommended_margin_pct,
                "change_pct": self.change_pct,
            }
        return {
            "channel": self.channel,
            "current": {
                "net": self.current_net,
                "gross": self.current_gross,
                "margin_pct": self.current_margin_pct,
            },
            "recommended": recommended,
            "notes": list(self.notes),
        }


@dataclass
class PricingMatrix:
    """Une ligne par canal connu, dans l'ordre de `CHANNELS`."""

    product_id: str
    base_cost: Optional[float]
    rows: List[PricingMatrixRow] = field(default_factory=list)

    def row(self, channel: str) -> Optional[PricingMatrixRow]:
        channel = normalize_channel(channel)
        return next((r for r in self.rows if r.channel == channel), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "base_cost": self.base_cost,
            "matrix": [r.to_dict() for r in self.rows],
        }
