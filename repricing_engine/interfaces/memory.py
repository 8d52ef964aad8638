"""
Implémentations en mémoire des ports d'accès aux données.

Utilisées par les tests et par les runs locaux sans base (option
`--fixtures` du script de repricing). Le comportement suit celui des
adapters Supabase : transitions de brouillon conditionnelles, mise à jour
du prix actif par canal, historique append-only.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..models.pricing import (
    CHANNEL_PRICE_FIELDS,
    CompetitorObservation,
    DraftStatus,
    PriceDraft,
    PricingComponents,
    normalize_channel,
)
from ..models.product import (
    ProductListFilters,
    ProductListResult,
    ProductRecord,
    normalize_import_payload,
)
from .ports import PricingRepositoryPort, ProductRepositoryPort


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryPricingRepository(PricingRepositoryPort):
    """Stockage des fiches tarifaires, concurrents et brouillons en dictionnaires."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.clock = clock
        self.pricing: Dict[str, PricingComponents] = {}
        self.competitors: Dict[str, List[CompetitorObservation]] = {}
        self.drafts: Dict[str, PriceDraft] = {}
        self.history: List[Dict[str, Any]] = []
        self.learning_signals: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    # Helpers de remplissage
    def set_pricing(self, components: PricingComponents) -> None:
        self.pricing[components.product_id] = components

    def add_competitor(self, product_id: str, observation: CompetitorObservation) -> None:
        self.competitors.setdefault(product_id, []).append(observation)

    def get_pricing_snapshot(
        self, product_id: str, channel: str, region: Optional[str] = None
    ) -> Optional[PricingComponents]:
        components = self.pricing.get(product_id)
        return replace(components) if components else None

    def list_competitor_prices(
        self, product_id: str, channel: Optional[str] = None
    ) -> List[CompetitorObservation]:
        return list(self.competitors.get(product_id, []))

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
        draft = PriceDraft(
            id=str(uuid.uuid4()),
            product_id=product_id,
            channel=channel,
            old_net=old_net,
            old_gross=old_gross,
            old_margin_pct=old_margin_pct,
            new_net=new_net,
            new_gross=new_gross,
            new_margin_pct=new_margin_pct,
            change_pct=change_pct,
            notes=notes,
            created_at=self.clock(),
            created_by=created_by,
        )
        with self._lock:
            self.drafts[draft.id] = draft
        return replace(draft)

    def get_price_draft(self, draft_id: str) -> Optional[PriceDraft]:
        draft = self.drafts.get(draft_id)
        return replace(draft) if draft else None

    def find_draft_for_day(self, product_id: str, channel: str, day: date) -> Optional[PriceDraft]:
        candidates = [
            d
            for d in self.drafts.values()
            if d.product_id == product_id
            and d.channel == channel
            and d.created_at.astimezone(timezone.utc).date() == day
        ]
        if not candidates:
            return None
        return replace(min(candidates, key=lambda d: d.created_at))

    def list_price_drafts(
        self, product_id: Optional[str] = None, status: Optional[DraftStatus] = None
    ) -> List[PriceDraft]:
        drafts = [
            replace(d)
            for d in self.drafts.values()
            if (product_id is None or d.product_id == product_id)
            and (status is None or d.status == status)
        ]
        return sorted(drafts, key=lambda d: d.created_at)

    def _transition(self, draft_id: str, status: DraftStatus, actor: str) -> Optional[PriceDraft]:
        with self._lock:
            draft = self.drafts.get(draft_id)
            if draft is None or draft.status != DraftStatus.PENDING:
                return None
            updated = replace(draft, status=status, approved_by=actor, approved_at=self.clock())
            self.drafts[draft_id] = updated
        return replace(updated)

    def approve_price_draft(self, draft_id: str, approved_by: str) -> Optional[PriceDraft]:
        return self._transition(draft_id, DraftStatus.APPROVED, approved_by)

    def reject_price_draft(self, draft_id: str, rejected_by: str) -> Optional[PriceDraft]:
        return self._transition(draft_id, DraftStatus.REJECTED, rejected_by)

    def update_live_price(self, product_id: str, channel: str, net: float, gross: Optional[float]) -> None:
        channel = normalize_channel(channel)
        if channel not in CHANNEL_PRICE_FIELDS:
            raise ValueError(f"Unknown channel: {channel}")

        with self._lock:
            components = self.pricing.get(product_id)
            if components is None:
                raise RuntimeError(f"No pricing row updated for product {product_id}")
            net_fields, gross_fields = CHANNEL_PRICE_FIELDS[channel]
            setattr(components, net_fields[0], net)
            if gross_fields and gross is not None:
                setattr(components, gross_fields[0], gross)

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
        self.history.append(
            {
                "product_id": product_id,
                "channel": channel,
                "old_net": old_net,
                "new_net": new_net,
                "margin_before": margin_before,
                "margin_after": margin_after,
                "meta": meta or {},
                "created_at": self.clock(),
            }
        )

    def record_learning_signal(
        self,
        product_id: str,
        channel: str,
        period: str,
        sales_change_pct: Optional[float] = None,
        stock_change_pct: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        self.learning_signals.append(
            {
                "product_id": product_id,
                "channel": channel,
                "period": period,
                "sales_change_pct": sales_change_pct,
                "stock_change_pct": stock_change_pct,
                "notes": notes,
                "created_at": self.clock(),
            }
        )


class InMemoryProductRepository(ProductRepositoryPort):
    """Catalogue produit en mémoire, ordonné par date d'insertion."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.clock = clock
        self.products: Dict[str, ProductRecord] = {}

    def add(self, product: ProductRecord) -> None:
        self.products[product.id] = product

    def find_by_id_or_sku(
        self, product_id: Optional[str] = None, sku: Optional[str] = None
    ) -> Optional[ProductRecord]:
        if not product_id and not sku:
            return None
        # L'id est prioritaire sur le SKU
        if product_id and product_id in self.products:
            return self.products[product_id]
        if sku:
            return next((p for p in self.products.values() if p.sku == sku), None)
        return None

    def list(self, filters: ProductListFilters) -> ProductListResult:
        filters = filters.normalized()
        items = list(self.products.values())

        if filters.brand_id:
            items = [p for p in items if p.brand_id == filters.brand_id]
        if filters.category_id:
            items = [p for p in items if p.category_id == filters.category_id]
        if filters.status:
            items = [p for p in items if p.status == filters.status]
        if filters.search:
            needle = filters.search.lower()
            items = [
                p for p in items
                if needle in p.name.lower() or needle in p.slug.lower() or needle in p.sku.lower()
            ]

        # Plus récents d'abord, comme l'adapter Supabase
        items.reverse()
        page_items = items[filters.offset:filters.offset + filters.page_size]
        return ProductListResult(
            items=page_items,
            total=len(items),
            page=filters.page,
            page_size=filters.page_size,
        )

    def upsert_from_import(self, payload: Dict[str, Any]) -> str:
        data = normalize_import_payload(payload)
        existing = self.find_by_id_or_sku(product_id=None, sku=data["sku"]) if data["sku"] else None
        if existing is None and data["id"]:
            existing = self.products.get(data["id"])

        now = self.clock()
        if existing is not None:
            updated = replace(
                existing,
                name=data["name"],
                slug=data["slug"],
                brand_id=data["brand_id"],
                category_id=data["category_id"],
                status=data["status"],
                line=data["line"],
                image_url=data["image_url"],
                updated_at=now,
            )
            self.products[existing.id] = updated
            return existing.id

        product = ProductRecord(
            id=data["id"] or str(uuid.uuid4()),
            brand_id=data["brand_id"],
            name=data["name"],
            slug=data["slug"],
            sku=data["sku"] or "",
            category_id=data["category_id"],
            status=data["status"],
            line=data["line"],
            image_url=data["image_url"],
            created_at=now,
            updated_at=now,
        )
        self.products[product.id] = product
        return product.id

    def list_ids(self) -> List[str]:
        return list(self.products.keys())
