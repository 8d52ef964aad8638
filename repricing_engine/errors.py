"""
Exceptions du moteur de repricing.

Toutes les erreurs métier héritent de `RepricingError`, qui porte un code
stable et une représentation sérialisable pour les réponses JSON.
"""

from typing import Any, Dict, Optional


class RepricingError(Exception):
    """Exception de base du moteur."""

    default_code = "REPRICING_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": self.__class__.__name__,
        }


class MissingPricing(RepricingError):
    """Snapshot incomplet : pas de coût ou pas de prix net pour le canal."""

    default_code = "MISSING_PRICING"

    def __init__(self, product_id: str, channel: Optional[str] = None, missing: Optional[str] = None):
        self.product_id = product_id
        self.channel = channel
        self.missing = missing
        message = f"Pricing incomplete for product {product_id}"
        if channel:
            message += f" on channel {channel}"
        if missing:
            message += f" (missing: {missing})"
        super().__init__(
            message,
            details={"product_id": product_id, "channel": channel, "missing": missing},
        )


class InvalidAdjustment(RepricingError):
    """Ajustement hors domaine (prix net simulé <= 0, delta non fini, ...)."""

    default_code = "INVALID_ADJUSTMENT"


class InvalidDraftState(RepricingError):
    """Transition de statut interdite sur un brouillon."""

    default_code = "INVALID_DRAFT_STATE"

    def __init__(self, draft_id: str, status: str, action: str = "approve"):
        self.draft_id = draft_id
        self.status = status
        super().__init__(
            f"Cannot {action} draft {draft_id}: status is {status}",
            details={"draft_id": draft_id, "status": status, "action": action},
        )


class DraftNotFound(RepricingError):
    """Brouillon inconnu."""

    default_code = "DRAFT_NOT_FOUND"

    def __init__(self, draft_id: str):
        self.draft_id = draft_id
        super().__init__(f"Draft not found: {draft_id}", details={"draft_id": draft_id})


class ProductNotFound(RepricingError):
    default_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_ref: str):
        self.product_ref = product_ref
        super().__init__(f"Product not found: {product_ref}", details={"product": product_ref})


class ProcessingError(RepricingError):
    """Échec inattendu pendant l'évaluation d'un produit dans un batch."""

    default_code = "PROCESSING_ERROR"

    def __init__(self, product_id: str, cause: Exception):
        self.product_id = product_id
        self.cause = cause
        super().__init__(
            f"Error processing product {product_id}: {cause}",
            details={"product_id": product_id, "cause": type(cause).__name__},
        )


class ConfigurationError(RepricingError):
    """Configuration d'environnement manquante ou invalide."""

    default_code = "CONFIGURATION_ERROR"
