"""
Structures produit (catalogue) utilisées par les cas d'usage de `catalog`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

DEFAULT_PAGE_SIZE = 20


@dataclass
class ProductRecord:
    id: str
    brand_id: str
    name: str
    slug: str
    sku: str
    category_id: Optional[str] = None
    status: Optional[str] = None
    line: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("created_at", "updated_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


IMPORT_OPTIONAL_FIELDS = ("category_id", "status", "line", "image_url")


def normalize_import_payload(payload: Any) -> Dict[str, Any]:
    """
    Valide un payload d'import produit et ne garde que les champs connus.

    Règles :
    - payload dict obligatoire,
    - `sku` ou `id` obligatoire (clé d'upsert),
    - `name`, `slug`, `brand_id` obligatoires.
    """
    if not payload or not isinstance(payload, dict):
        raise ValueError("Invalid import payload")

    def _str(key: str) -> Optional[str]:
        value = payload.get(key)
        return value if isinstance(value, str) and value else None

    product_id = _str("id")
    sku = _str("sku")
    if not sku and not product_id:
        raise ValueError("Import payload must include sku or id")

    name, slug, brand_id = _str("name"), _str("slug"), _str("brand_id")
    if not name or not slug or not brand_id:
        raise ValueError("Import payload missing required fields: name, slug, brand_id")

    normalized: Dict[str, Any] = {
        "id": product_id,
        "sku": sku,
        "name": name,
        "slug": slug,
        "brand_id": brand_id,
    }
    for key in IMPORT_OPTIONAL_FIELDS:
        normalized[key] = _str(key)
    return normalized


@dataclass
class ProductListFilters:
    search: Optional[str] = None
    brand_id: Optional[str] = None
    category_id: Optional[str] = None
    status: Optional[str] = None
    channel: Optional[str] = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def normalized(self) -> "ProductListFilters":
        """Page et taille de page ramenées à des valeurs valides (>= 1)."""
        page = self.page if self.page and self.page > 0 else 1
        page_size = self.page_size if self.page_size and self.page_size > 0 else DEFAULT_PAGE_SIZE
        return ProductListFilters(
            search=self.search,
            brand_id=self.brand_id,
            category_id=self.category_id,
            status=self.status,
            channel=self.channel,
            page=page,
            page_size=page_size,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class ProductListResult:
    items: List[ProductRecord] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [p.to_dict() for p in self.items],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
        }
