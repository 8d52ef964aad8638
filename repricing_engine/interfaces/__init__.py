"""
Sous-package `interfaces` du moteur de repricing.

Responsabilités :
- définir les ports d'accès aux données (`ports`),
- fournir l'implémentation Supabase (`data_access`),
- fournir une implémentation en mémoire pour les tests (`memory`).

Le moteur reçoit toujours ses repositories en paramètre : aucun client
global n'est créé à l'import.
"""

from .memory import InMemoryPricingRepository, InMemoryProductRepository
from .ports import PricingRepositoryPort, ProductRepositoryPort

__all__ = [
    "InMemoryPricingRepository",
    "InMemoryProductRepository",
    "PricingRepositoryPort",
    "ProductRepositoryPort",
]
