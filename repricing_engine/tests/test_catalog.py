"""
Tests unitaires pour catalog.py et les modèles produit
"""

import pytest

from repricing_engine.catalog import ProductCatalog
from repricing_engine.errors import ProductNotFound
from repricing_engine.models.product import ProductListFilters, ProductRecord, normalize_import_payload
from repricing_engine.snapshot_resolver import SnapshotResolver


@pytest.fixture
def catalog(product_repo, pricing_repo):
    return ProductCatalog(product_repo, SnapshotResolver(pricing_repo))


def _product(index: int) -> ProductRecord:
    return ProductRecord(
        id=f"p{index}",
        brand_id="brand-1" if index % 2 else "brand-2",
        name=f"Product {index}",
        slug=f"product-{index}",
        sku=f"SKU-{index:03d}",
    )


class TestGetProduct:
    """Tests pour ProductCatalog.get."""

    def test_by_id_and_sku(self, catalog, product_repo, sample_product):
        product_repo.add(sample_product)

        assert catalog.get(product_id="p1").sku == "SKU-001"
        assert catalog.get(sku="SKU-001").id == "p1"

    def test_not_found(self, catalog):
        with pytest.raises(ProductNotFound):
            catalog.get(product_id="missing")

    def test_reference_required(self, catalog):
        with pytest.raises(ValueError):
            catalog.get()


class TestListProducts:
    """Tests pour ProductCatalog.list."""

    def test_default_pagination(self, catalog, product_repo):
        for i in range(1, 26):
            product_repo.add(_product(i))

        result = catalog.list()

        assert result.page == 1
        assert result.page_size == 20
        assert result.total == 25
        assert len(result.items) == 20
        # Plus récents d'abord
        assert result.items[0].id == "p25"

    def test_second_page_and_filters(self, catalog, product_repo):
        for i in range(1, 26):
            product_repo.add(_product(i))

        result = catalog.list(ProductListFilters(brand_id="brand-1", page=2, page_size=5))

        assert result.total == 13
        assert [p.id for p in result.items] == ["p15", "p13", "p11", "p9", "p7"]

    def test_invalid_page_is_normalized(self, catalog, product_repo):
        product_repo.add(_product(1))
        result = catalog.list(ProductListFilters(page=0, page_size=-3))
        assert (result.page, result.page_size) == (1, 20)

    def test_search(self, catalog, product_repo):
        product_repo.add(_product(1))
        product_repo.add(_product(2))
        result = catalog.list(ProductListFilters(search="sku-002"))
        assert [p.id for p in result.items] == ["p2"]


class TestImport:
    """Tests pour ProductCatalog.upsert_from_import."""

    def test_payload_required(self, catalog):
        with pytest.raises(ValueError, match="Import payload is required"):
            catalog.upsert_from_import(None)

    def test_insert_then_update_by_sku(self, catalog, product_repo):
        payload = {"sku": "SKU-9", "name": "Bowl", "slug": "bowl", "brand_id": "b1"}

        product_id = catalog.upsert_from_import(payload)
        same_id = catalog.upsert_from_import({**payload, "name": "Bowl v2"})

        assert same_id == product_id
        assert product_repo.products[product_id].name == "Bowl v2"

    def test_missing_required_fields(self, catalog):
        with pytest.raises(ValueError, match="missing required fields"):
            catalog.upsert_from_import({"sku": "SKU-9", "name": "Bowl"})

    def test_normalize_drops_unknown_fields(self):
        data = normalize_import_payload(
            {"id": "p1", "name": "Bowl", "slug": "bowl", "brand_id": "b1", "price": 10, "status": "active"}
        )
        assert "price" not in data
        assert data["status"] == "active"
        assert data["sku"] is None


class TestDetailWithPricing:
    """Tests pour ProductCatalog.get_detail_with_pricing."""

    def test_with_pricing(self, catalog, product_repo, sample_product, seed_pricing):
        product_repo.add(sample_product)
        seed_pricing("p1", net=100.0, cost=70.0)

        detail = catalog.get_detail_with_pricing("p1")

        assert detail["product"]["id"] == "p1"
        assert detail["pricing"]["channel"] == "B2C"
        assert detail["pricing"]["net"] == 100.0

    def test_without_pricing(self, catalog, product_repo, sample_product):
        product_repo.add(sample_product)
        assert catalog.get_detail_with_pricing("p1")["pricing"] is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
