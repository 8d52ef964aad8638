"""
Script pour lancer un batch de repricing sur le catalogue.

Usage (depuis la racine du projet) :

    python -m scripts.run_repricing --mode safe --json
    python -m scripts.run_repricing --mode auto --channel AMAZON --csv repricing.csv
    python -m scripts.run_repricing --fixtures data/sample.json --json

Sans `--fixtures`, le script utilise Supabase (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY).
Avec `--fixtures`, un fichier JSON est chargé dans les repositories en mémoire :

    {
        "products": [{"id": "p1", "brand_id": "b1", "name": "...", "slug": "...", "sku": "..."}],
        "pricing": [{"product_id": "p1", "b2c_store_net": 50.0, "full_cost_eur": 45.0}],
        "competitors": [{"product_id": "p1", "competitor": "Shop A", "net_price": 52.0}]
    }
"""

import argparse
import json
import logging
import sys

from repricing_engine.interfaces.memory import InMemoryPricingRepository, InMemoryProductRepository
from repricing_engine.models.pricing import COMPONENT_FIELDS, CompetitorObservation, PricingComponents
from repricing_engine.models.product import ProductRecord
from repricing_engine.reporting import export_csv, summarize_batch
from repricing_engine.service import RepricingService
from repricing_engine.settings import Settings, configure_logging

logger = logging.getLogger(__name__)


def load_fixtures(path: str) -> RepricingService:
    """Construit un service sur des repositories en mémoire remplis depuis un fichier JSON."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    pricing_repo = InMemoryPricingRepository()
    product_repo = InMemoryProductRepository()

    for row in data.get("products", []):
        product_repo.add(
            ProductRecord(
                id=row["id"],
                brand_id=row.get("brand_id", ""),
                name=row.get("name", row["id"]),
                slug=row.get("slug", row["id"]),
                sku=row.get("sku", ""),
                category_id=row.get("category_id"),
                status=row.get("status"),
            )
        )
    for row in data.get("pricing", []):
        values = {name: row.get(name) for name in COMPONENT_FIELDS}
        pricing_repo.set_pricing(PricingComponents(product_id=row["product_id"], **values))
    for row in data.get("competitors", []):
        pricing_repo.add_competitor(
            row["product_id"],
            CompetitorObservation(
                competitor_name=row.get("competitor", "unknown"),
                net_price=row.get("net_price"),
                currency=row.get("currency", "EUR"),
                url=row.get("url"),
            ),
        )

    logger.info(f"Fixtures chargées: {len(product_repo.products)} produits, {len(pricing_repo.pricing)} fiches tarifaires")
    return RepricingService(pricing_repo, product_repo)


def main() -> None:
    parser = argparse.ArgumentParser(description="Lance un batch de repricing IA.")
    parser.add_argument("--mode", choices=["safe", "auto"], default=None, help="Mode de repricing (défaut: REPRICING_DEFAULT_MODE ou safe).")
    parser.add_argument("--channel", default=None, help="Canal de prix (B2C, AMAZON, DEALER_BASIC, ...).")
    parser.add_argument("--product-id", action="append", dest="product_ids", help="Limiter le batch à ce produit (répétable).")
    parser.add_argument("--json", action="store_true", help="Afficher la réponse JSON complète sur stdout.")
    parser.add_argument("--csv", default=None, help="Exporter une ligne par produit dans ce fichier CSV.")
    parser.add_argument("--fixtures", default=None, help="Fichier JSON de données (repositories en mémoire, sans Supabase).")

    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings)

    try:
        service = load_fixtures(args.fixtures) if args.fixtures else RepricingService.from_settings(settings)
    except Exception as e:
        print(f"❌ Erreur: impossible d'initialiser le service de repricing: {e}", file=sys.stderr)
        sys.exit(1)

    with service:
        try:
            result = service.reprice(mode=args.mode, channel=args.channel, product_ids=args.product_ids)
        except Exception as e:
            print(json.dumps({"status": "error", "message": str(e), "type": type(e).__name__}, ensure_ascii=False))
            sys.exit(1)

    if args.csv:
        export_csv(result, args.csv)
        print(f"✅ Export CSV: {args.csv}", file=sys.stderr)

    if args.json:
        print(json.dumps(result.to_response(), indent=2, ensure_ascii=False))
    else:
        print(json.dumps(summarize_batch(result), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
