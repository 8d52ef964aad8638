"""
Accès aux données Supabase pour le moteur de repricing.

Ce module fournit :
- `DataAccessHandle` : ouverture/fermeture explicite du client Supabase,
  créé une fois au démarrage du process puis partagé entre les requêtes,
- `SupabasePricingRepository` : implémentation de `PricingRepositoryPort`,
- `SupabaseProductRepository` : implémentation de `ProductRepositoryPort`.

Tables utilisées :
- `product_pricing` (une ligne par produit, tous canaux),
- `competitor_prices`,
- `product_price_drafts`,
- `ai_pricing_history`,
- `ai_learning_journal`,
- `brand_products`.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser
from supabase import Client, create_client  # type: ignore

from ..errors import ConfigurationError
from ..models.pricing import (
    CHANNEL_PRICE_FIELDS,
    COMPONENT_FIELDS,
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
from ..settings import Settings
from .ports import PricingRepositoryPort, ProductRepositoryPort

logger = logging.getLogger(__name__)


class DataAccessHandle:
    """
    Client Supabase à durée de vie explicite.

    Utilisation typique (au démarrage du process) :
        handle = DataAccessHandle(settings).open()
        ...
        handle.close()

    ou comme context manager.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self._client: Optional[Client] = None

    def open(self) -> "DataAccessHandle":
        if self._client is not None:
            return self

        if not self.settings.supabase_url or not self.settings.supabase_key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY/SUPABASE_KEY must be set "
                "to use the Supabase repositories."
            )

        self._client = create_client(self.settings.supabase_url, self.settings.supabase_key)
        logger.info("[DataAccess] Supabase client opened")
        return self

    def close(self) -> None:
        if self._client is not None:
            self._client = None
            logger.info("[DataAccess] Supabase client released")

    @property
    def is_open(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> Client:
        if self._client is None:
            raise RuntimeError("DataAccessHandle is not open")
        return self._client

    def __enter__(self) -> "DataAccessHandle":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return date_parser.isoparse(str(value))
    except (TypeError, ValueError):
        return None


def _quote_filter_value(value: str) -> str:
    """Valeur entre guillemets pour un filtre PostgREST (virgules, parenthèses, points)."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _rows(response: Any) -> List[Dict[str, Any]]:
    # Vérifier si response.data existe (compatible avec différentes versions de Supabase)
    if not hasattr(response, "data"):
        raise RuntimeError("Invalid Supabase response: missing 'data' attribute")
    data = response.data or []
    return data if isinstance(data, list) else [data]


def _first_row(response: Any) -> Optional[Dict[str, Any]]:
    if response is None:
        return None
    rows = _rows(response)
    return rows[0] if rows else None


def _row_to_components(row: Dict[str, Any]) -> PricingComponents:
    values = {name: _safe_float(row.get(name)) for name in COMPONENT_FIELDS}
    return PricingComponents(product_id=str(row.get("product_id")), **values)


def _row_to_draft(row: Dict[str, Any]) -> PriceDraft:
    return PriceDraft(
        id=str(row["id"]),
        product_id=str(row["product_id"]),
        channel=row.get("channel") or "",
        old_net=_safe_float(row.get("old_net")),
        old_gross=_safe_float(row.get("old_gross")),
        old_margin_pct=_safe_float(row.get("old_margin")),
        new_net=_safe_float(row.get("new_net")),
        new_gross=_safe_float(row.get("new_gross")),
        new_margin_pct=_safe_float(row.get("new_margin")),
        change_pct=_safe_float(row.get("change_pct")),
        notes=row.get("notes"),
        created_at=_parse_datetime(row.get("created_at")) or datetime.now(timezone.utc),
        status=DraftStatus(row.get("status") or DraftStatus.PENDING.value),
        created_by=row.get("created_by"),
        approved_by=row.get("approved_by"),
        approved_at=_parse_datetime(row.get("approved_at")),
    )


def _row_to_product(row: Dict[str, Any]) -> ProductRecord:
    return ProductRecord(
        id=str(row["id"]),
        brand_id=row.get("brand_id") or "",
        name=row.get("name") or "",
        slug=row.get("slug") or "",
        sku=row.get("sku") or "",
        category_id=row.get("category_id"),
        status=row.get("status"),
        line=row.get("line"),
        image_url=row.get("image_url"),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


class SupabasePricingRepository(PricingRepositoryPort):
    """`PricingRepositoryPort` sur les tables tarifaires Supabase."""

    def __init__(self, handle: DataAccessHandle):
        self.handle = handle

    @property
    def client(self) -> Client:
        return self.handle.client

    def get_pricing_snapshot(
        self, product_id: str, channel: str, region: Optional[str] = None
    ) -> Optional[PricingComponents]:
        response = (
            self.client.table("product_pricing")
            .select("*")
            .eq("product_id", product_id)
            .maybe_single()
            .execute()
        )
        row = _first_row(response)
        return _row_to_components(row) if row else None

    def list_competitor_prices(
        self, product_id: str, channel: Optional[str] = None
    ) -> List[CompetitorObservation]:
        query = self.client.table("competitor_prices").select("*").eq("product_id", product_id)
        if channel:
            query = query.eq("channel", normalize_channel(channel))
        rows = _rows(query.execute())

        return [
            CompetitorObservation(
                competitor_name=row.get("competitor") or "unknown",
                net_price=_safe_float(row.get("net_price")),
                currency=row.get("currency") or "EUR",
                url=row.get("url"),
            )
            for row in rows
        ]

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
        record = {
            "product_id": product_id,
            "channel": channel,
            "old_net": old_net,
            "old_gross": old_gross,
            "old_margin": old_margin_pct,
            "new_net": new_net,
            "new_gross": new_gross,
            "new_margin": new_margin_pct,
            "change_pct": change_pct,
            "notes": notes,
            "status": DraftStatus.PENDING.value,
            "created_by": created_by,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        row = _first_row(self.client.table("product_price_drafts").insert(record).execute())
        if not row:
            raise RuntimeError(f"Draft insert returned no row for product {product_id}")
        return _row_to_draft(row)

    def get_price_draft(self, draft_id: str) -> Optional[PriceDraft]:
        response = (
            self.client.table("product_price_drafts")
            .select("*")
            .eq("id", draft_id)
            .maybe_single()
            .execute()
        )
        row = _first_row(response)
        return _row_to_draft(row) if row else None

    def find_draft_for_day(self, product_id: str, channel: str, day: date) -> Optional[PriceDraft]:
        day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1)
        response = (
            self.client.table("product_price_drafts")
            .select("*")
            .eq("product_id", product_id)
            .eq("channel", channel)
            .gte("created_at", day_start.isoformat())
            .lt("created_at", day_end.isoformat())
            .order("created_at", desc=False)
            .limit(1)
            .execute()
        )
        row = _first_row(response)
        return _row_to_draft(row) if row else None

    def list_price_drafts(
        self, product_id: Optional[str] = None, status: Optional[DraftStatus] = None
    ) -> List[PriceDraft]:
        query = self.client.table("product_price_drafts").select("*")
        if product_id:
            query = query.eq("product_id", product_id)
        if status:
            query = query.eq("status", status.value)
        rows = _rows(query.order("created_at", desc=False).execute())
        return [_row_to_draft(row) for row in rows]

    def _transition(self, draft_id: str, status: DraftStatus, actor: str) -> Optional[PriceDraft]:
        update_data = {
            "status": status.value,
            "approved_by": actor,
            "approved_at": datetime.now(timezone.utc).isoformat(),
        }
        # Le filtre sur `status` rend la transition conditionnelle côté base
        response = (
            self.client.table("product_price_drafts")
            .update(update_data)
            .eq("id", draft_id)
            .eq("status", DraftStatus.PENDING.value)
            .execute()
        )
        row = _first_row(response)
        return _row_to_draft(row) if row else None

    def approve_price_draft(self, draft_id: str, approved_by: str) -> Optional[PriceDraft]:
        return self._transition(draft_id, DraftStatus.APPROVED, approved_by)

    def reject_price_draft(self, draft_id: str, rejected_by: str) -> Optional[PriceDraft]:
        return self._transition(draft_id, DraftStatus.REJECTED, rejected_by)

    def update_live_price(self, product_id: str, channel: str, net: float, gross: Optional[float]) -> None:
        channel = normalize_channel(channel)
        if channel not in CHANNEL_PRICE_FIELDS:
            raise ValueError(f"Unknown channel: {channel}")

        net_fields, gross_fields = CHANNEL_PRICE_FIELDS[channel]
        update_data: Dict[str, Any] = {
            net_fields[0]: net,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if gross_fields and gross is not None:
            update_data[gross_fields[0]] = gross

        response = (
            self.client.table("product_pricing")
            .update(update_data)
            .eq("product_id", product_id)
            .execute()
        )
        if not _rows(response):
            raise RuntimeError(f"No pricing row updated for product {product_id}")

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
        record = {
            "product_id": product_id,
            "channel": channel,
            "old_net": old_net,
            "new_net": new_net,
            "margin_before": margin_before,
            "margin_after": margin_after,
            "meta": meta or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.client.table("ai_pricing_history").insert(record).execute()

    def record_learning_signal(
        self,
        product_id: str,
        channel: str,
        period: str,
        sales_change_pct: Optional[float] = None,
        stock_change_pct: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        record = {
            "product_id": product_id,
            "channel": channel,
            "event_type": "PERIOD",
            "value": sales_change_pct,
            "notes": notes,
            "input_data": {
                "period": period,
                "sales_change_pct": sales_change_pct,
                "stock_change_pct": stock_change_pct,
            },
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.client.table("ai_learning_journal").insert(record).execute()


class SupabaseProductRepository(ProductRepositoryPort):
    """`ProductRepositoryPort` sur la table `brand_products`."""

    # Taille de page pour `list_ids` (valeur par défaut de `max-rows` côté PostgREST)
    ids_page_size = 1000

    def __init__(self, handle: DataAccessHandle):
        self.handle = handle

    @property
    def client(self) -> Client:
        return self.handle.client

    def find_by_id_or_sku(
        self, product_id: Optional[str] = None, sku: Optional[str] = None
    ) -> Optional[ProductRecord]:
        if not product_id and not sku:
            return None

        # Deux requêtes `eq` plutôt qu'un filtre `or` : l'id est prioritaire sur le SKU
        row = None
        if product_id:
            row = self._first_product_where("id", product_id)
        if row is None and sku:
            row = self._first_product_where("sku", sku)
        return _row_to_product(row) if row else None

    def _first_product_where(self, column: str, value: str) -> Optional[Dict[str, Any]]:
        response = self.client.table("brand_products").select("*").eq(column, value).limit(1).execute()
        return _first_row(response)

    def list(self, filters: ProductListFilters) -> ProductListResult:
        filters = filters.normalized()
        query = self.client.table("brand_products").select("*", count="exact")

        if filters.brand_id:
            query = query.eq("brand_id", filters.brand_id)
        if filters.category_id:
            query = query.eq("category_id", filters.category_id)
        if filters.status:
            query = query.eq("status", filters.status)
        if filters.search:
            pattern = _quote_filter_value(f"%{filters.search}%")
            query = query.or_(f"name.ilike.{pattern},slug.ilike.{pattern},sku.ilike.{pattern}")

        response = (
            query.order("created_at", desc=True)
            .range(filters.offset, filters.offset + filters.page_size - 1)
            .execute()
        )
        rows = _rows(response)
        total = getattr(response, "count", None)

        return ProductListResult(
            items=[_row_to_product(row) for row in rows],
            total=total if total is not None else len(rows),
            page=filters.page,
            page_size=filters.page_size,
        )

    def upsert_from_import(self, payload: Dict[str, Any]) -> str:
        data = normalize_import_payload(payload)
        record = {k: v for k, v in data.items() if k != "id" or v is not None}
        record["updated_at"] = datetime.now(timezone.utc).isoformat()
        on_conflict = "sku" if data["sku"] else "id"

        row = _first_row(
            self.client.table("brand_products").upsert(record, on_conflict=on_conflict).execute()
        )
        if not row:
            raise RuntimeError(f"Product upsert returned no row for {data['sku'] or data['id']}")
        return str(row["id"])

    def list_ids(self) -> List[str]:
        """Tous les ids du catalogue, page par page (PostgREST plafonne chaque réponse à `max-rows`)."""
        ids: List[str] = []
        offset = 0
        while True:
            response = (
                self.client.table("brand_products")
                .select("id")
                .order("created_at", desc=False)
                .order("id", desc=False)
                .range(offset, offset + self.ids_page_size - 1)
                .execute()
            )
            rows = _rows(response)
            ids.extend(str(row["id"]) for row in rows)
            if len(rows) < self.ids_page_size:
                break
            offset += self.ids_page_size

        logger.info(f"[DataAccess] {len(ids)} product ids loaded")
        return ids
