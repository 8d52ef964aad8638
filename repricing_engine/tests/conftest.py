"""
Fixtures partagées pour les tests.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, Mock

import pytest

# Ajouter la racine du projet au path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from repricing_engine.interfaces.memory import InMemoryPricingRepository, InMemoryProductRepository
from repricing_engine.ledger import DraftLedger
from repricing_engine.locks import ProductLockRegistry
from repricing_engine.models.pricing import CompetitorObservation, PricingComponents, PricingSnapshot
from repricing_engine.models.product import ProductRecord
from repricing_engine.service import RepricingService


class FixedClock:
    """Horloge contrôlable pour les tests (UTC)."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def pricing_repo(clock):
    return InMemoryPricingRepository(clock=clock)


@pytest.fixture
def product_repo(clock):
    return InMemoryProductRepository(clock=clock)


@pytest.fixture
def ledger(pricing_repo, clock):
    return DraftLedger(pricing_repo, locks=ProductLockRegistry(), clock=clock)


@pytest.fixture
def service(pricing_repo, product_repo, clock):
    return RepricingService(pricing_repo, product_repo, clock=clock)


@pytest.fixture
def make_snapshot():
    """Fabrique de snapshots cohérents (TVA 19 %)."""

    def _make(product_id="p1", net=50.0, cost=45.0, channel="B2C", vat_rate=0.19):
        margin = (net - cost) / net * 100 if net and cost is not None and net > 0 else None
        return PricingSnapshot(
            product_id=product_id,
            channel=channel,
            net=net,
            gross=net * (1 + vat_rate) if net is not None else None,
            margin_pct=margin,
            cost_eur=cost,
            vat_rate=vat_rate,
        )

    return _make


@pytest.fixture
def seed_pricing(pricing_repo):
    """Enregistre une fiche tarifaire B2C en mémoire."""

    def _seed(product_id="p1", net=50.0, cost=45.0, **extra):
        components = PricingComponents(
            product_id=product_id,
            b2c_store_net=net,
            full_cost_eur=cost,
            vat_pct=19.0,
            **extra,
        )
        pricing_repo.set_pricing(components)
        return components

    return _seed


@pytest.fixture
def competitor():
    def _make(price, name="Competitor A"):
        return CompetitorObservation(competitor_name=name, net_price=price)

    return _make


@pytest.fixture
def sample_product(clock):
    return ProductRecord(
        id="p1",
        brand_id="brand-1",
        name="Shisha Premium 60cm",
        slug="shisha-premium-60",
        sku="SKU-001",
        category_id="cat-1",
        status="active",
        created_at=clock(),
        updated_at=clock(),
    )


# Mock Supabase client
@pytest.fixture
def mock_supabase_client():
    """Mock du client Supabase (requêtes chaînées)."""
    client = MagicMock()
    return client


@pytest.fixture
def mock_handle(mock_supabase_client):
    """DataAccessHandle déjà ouvert, branché sur le client mocké."""
    handle = Mock()
    handle.client = mock_supabase_client
    return handle
