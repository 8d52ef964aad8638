"""
Serveur Python persistant pour le moteur de repricing.

Le client Supabase est ouvert une seule fois au démarrage, puis le serveur
attend les requêtes via stdin. Si une requête plante, l'erreur est renvoyée
en JSON et loggée, mais le serveur ne s'arrête pas.

Communication :
- Entrée : JSON ligne par ligne sur stdin
- Sortie : JSON ligne par ligne sur stdout
- Logs : stderr

Chaque requête porte un champ `action` :
reprice, snapshot, simulate, create_draft, approve_draft, reject_draft,
advice, compare_competitors, pricing_matrix, get_product, list_products,
import_product, record_outcome.
"""

import json
import logging
import os
import sys
from typing import Any, Callable, Dict, Optional

# Ajout du chemin courant pour les imports relatifs si nécessaire
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from repricing_engine.errors import RepricingError
from repricing_engine.models.product import ProductListFilters
from repricing_engine.service import RepricingService
from repricing_engine.settings import Settings, configure_logging

logger = logging.getLogger(__name__)


def _require(data: Dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ValueError(f"{key} est requis")
    return value


def _reprice(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    """
    Format attendu :
    {"action": "reprice", "mode": "safe" | "auto", "channel": "B2C", "productIds": [...]}

    Le mode n'est "auto" que si la valeur vaut exactement "auto".
    """
    result = service.reprice(
        mode=data.get("mode", "safe"),
        channel=data.get("channel"),
        product_ids=data.get("productIds"),
    )
    return result.to_response()


def _snapshot(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    snapshot = service.snapshot(_require(data, "productId"), data.get("channel"))
    return {"status": "success", "snapshot": snapshot.to_dict()}


def _simulate(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    base, simulated = service.simulate(
        _require(data, "productId"),
        data.get("channel"),
        delta=data.get("delta"),
        override_net=data.get("newNet"),
        discount_pct=data.get("discountPct"),
        target_margin_pct=data.get("targetMarginPct"),
    )
    return {"status": "success", "base": base.to_dict(), "simulated": simulated.to_dict()}


def _create_draft(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    draft, created = service.create_draft(
        _require(data, "productId"),
        data.get("channel"),
        new_net=float(_require(data, "newNet")),
        created_by=_require(data, "createdBy"),
        notes=data.get("notes"),
    )
    return {"status": "success", "draftId": draft.id, "created": created, "draft": draft.to_dict()}


def _approve_draft(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    approval = service.approve_draft(_require(data, "draftId"), _require(data, "approverId"))
    return {"status": "success", "productId": approval["product_id"], "applied": approval["applied"]}


def _reject_draft(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    draft = service.reject_draft(_require(data, "draftId"), _require(data, "approverId"))
    return {"status": "success", "draft": draft.to_dict()}


def _advice(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    advice = service.advice(_require(data, "productId"), data.get("channel"))
    return {"status": "success", "advice": advice.to_dict() if advice else None}


def _compare_competitors(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    comparison = service.compare_competitors(_require(data, "productId"), data.get("channel"))
    return {"status": "success", "comparison": comparison.to_dict()}


def _pricing_matrix(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    """
    Format attendu :
    {"action": "pricing_matrix", "productId": "..."} ou {"action": "pricing_matrix", "sku": "..."}
    """
    if not data.get("productId") and not data.get("sku"):
        raise ValueError("productId ou sku est requis")
    matrix = service.pricing_matrix(product_id=data.get("productId"), sku=data.get("sku"))
    return {"status": "success", **matrix.to_dict()}


def _get_product(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    if data.get("withPricing"):
        detail = service.get_product_detail(_require(data, "productId"))
        return {"status": "success", **detail}
    product = service.get_product(product_id=data.get("productId"), sku=data.get("sku"))
    return {"status": "success", "product": product.to_dict()}


def _list_products(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    filters = ProductListFilters(
        search=data.get("search"),
        brand_id=data.get("brandId"),
        category_id=data.get("categoryId"),
        status=data.get("status"),
        channel=data.get("channel"),
        page=data.get("page") or 1,
        page_size=data.get("pageSize") or 20,
    )
    return {"status": "success", **service.list_products(filters).to_dict()}


def _import_product(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    product_id = service.import_product(data.get("payload"))
    return {"status": "success", "productId": product_id}


def _record_outcome(data: Dict[str, Any], service: RepricingService) -> Dict[str, Any]:
    service.record_outcome(
        _require(data, "productId"),
        data.get("channel"),
        _require(data, "period"),
        sales_change_pct=data.get("salesChangePct"),
        stock_change_pct=data.get("stockChangePct"),
        notes=data.get("notes"),
    )
    return {"status": "success"}


ACTIONS: Dict[str, Callable[[Dict[str, Any], RepricingService], Dict[str, Any]]] = {
    "reprice": _reprice,
    "snapshot": _snapshot,
    "simulate": _simulate,
    "create_draft": _create_draft,
    "approve_draft": _approve_draft,
    "reject_draft": _reject_draft,
    "advice": _advice,
    "compare_competitors": _compare_competitors,
    "pricing_matrix": _pricing_matrix,
    "get_product": _get_product,
    "list_products": _list_products,
    "import_product": _import_product,
    "record_outcome": _record_outcome,
}


def process_request(data: Any, service: Optional[RepricingService]) -> Dict[str, Any]:
    """Traite une requête JSON unique et retourne la réponse (lève en cas d'erreur)."""
    if service is None:
        raise RuntimeError("Le service de repricing n'a pas pu être initialisé au démarrage.")
    if not isinstance(data, dict):
        raise ValueError("La requête doit être un objet JSON")

    action = data.get("action", "reprice")
    handler = ACTIONS.get(action)
    if handler is None:
        raise ValueError(f"Action inconnue: {action}")
    return handler(data, service)


def error_response(error: Exception) -> Dict[str, Any]:
    """Réponse d'erreur pour l'appelant, sans stack trace."""
    response = {
        "status": "error",
        "message": str(error),
        "type": type(error).__name__,
    }
    if isinstance(error, RepricingError):
        response["error_code"] = error.error_code
    return response


def handle_line(line: str, service: Optional[RepricingService]) -> Optional[str]:
    """Parse, traite et sérialise une ligne ; None pour une ligne vide."""
    line = line.strip()
    if not line:
        return None

    try:
        request_data = json.loads(line)
        response_data = process_request(request_data, service)
    except Exception as e:
        # La trace complète part dans les logs (stderr), pas dans la réponse
        logger.error(f"Erreur traitement requête: {e}", exc_info=True)
        response_data = error_response(e)
    return json.dumps(response_data)


def main():
    settings = Settings.from_env()
    configure_logging(settings)
    logger.info(f"Service Python Repricing Engine démarré (PID: {os.getpid()})")

    try:
        service = RepricingService.from_settings(settings)
    except Exception as e:
        logger.error(f"Impossible d'initialiser le service de repricing: {e}", exc_info=True)
        service = None

    try:
        # Boucle de lecture sur stdin, jusqu'à fermeture du flux
        while True:
            try:
                line = sys.stdin.readline()
                if not line:
                    break

                output = handle_line(line, service)
                if output is None:
                    continue
                sys.stdout.write(output + "\n")
                sys.stdout.flush()

            except KeyboardInterrupt:
                break
            except Exception as global_error:
                logger.error(f"Erreur critique boucle principale: {global_error}", exc_info=True)
    finally:
        if service is not None:
            service.close()


if __name__ == "__main__":
    main()
