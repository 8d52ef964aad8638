"""
Cas d'usage du catalogue produit.
"""

import logging
from typing import Any, Dict, Optional

from .errors import ProductNotFound
from .interfaces.ports import ProductRepositoryPort
from .models.product import ProductListFilters, ProductListResult, ProductRecord
from .snapshot_resolver import SnapshotResolver

logger = logging.getLogger(__name__)

DETAIL_CHANNEL = "DEFAULT"


class ProductCatalog:
    """Lecture, liste paginée et import de produits."""

    def __init__(self, product_repo: ProductRepositoryPort, resolver: Optional[SnapshotResolver] = None):
        self.product_repo = product_repo
        self.resolver = resolver

    def get(self, product_id: Optional[str] = None, sku: Optional[str] = None) -> ProductRecord:
        if not product_id and not sku:
            raise ValueError("product_id or sku is required")
        product = self.product_repo.find_by_id_or_sku(product_id=product_id, sku=sku)
        if product is None:
            raise ProductNotFound(product_id or sku)
        return product

    def list(self, filters: Optional[ProductListFilters] = None) -> ProductListResult:
        filters = (filters or ProductListFilters()).normalized()
        return self.product_repo.list(filters)

    def upsert_from_import(self, payload: Optional[Dict[str, Any]]) -> str:
        if not payload:
            raise ValueError("Import payload is required")
        product_id = self.product_repo.upsert_from_import(payload)
        logger.info(f"[Catalog] Product imported: {product_id}")
        return product_id

    def get_detail_with_pricing(self, product_id: str) -> Dict[str, Any]:
        """Produit et snapshot du canal par défaut (None si la fiche est incomplète)."""
        product = self.get(product_id=product_id)
        snapshot = None
        if self.resolver is not None:
            snapshot = self.resolver.try_resolve(product.id, DETAIL_CHANNEL)
        return {
            "product": product.to_dict(),
            "pricing": snapshot.to_dict() if snapshot else None,
        }
