"""
Configuration centrale pour le moteur de repricing.

Ce module définit les paramètres métier utilisés par le moteur :
- seuils de marge (hausse forte / hausse modérée / baisse),
- seuils d'écart avec la moyenne des concurrents,
- bornes de variation en mode "safe",
- seuil en dessous duquel un changement est ignoré,
- TVA par défaut lorsque la fiche produit n'en fournit pas.

Les valeurs par défaut reproduisent le comportement historique du moteur
et peuvent être surchargées par canal.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class RepricingConfig:
    """
    Paramètres de haut niveau pour le moteur de repricing.

    Les pourcentages de marge sont exprimés en points (ex: 25.0 = 25 %),
    les ajustements en fraction du prix net (ex: 0.10 = +10 %).
    """

    # Bandes de marge, évaluées dans cet ordre (la première qui correspond gagne)
    margin_low_threshold_pct: float = 25.0
    margin_mid_threshold_pct: float = 30.0
    margin_high_threshold_pct: float = 55.0

    margin_low_adjustment: float = 0.10
    margin_mid_adjustment: float = 0.05
    margin_high_adjustment: float = -0.08

    # Écart avec la moyenne concurrente
    competitor_expensive_ratio: float = 1.15
    competitor_cheap_ratio: float = 0.85
    competitor_expensive_adjustment: float = -0.05
    competitor_cheap_adjustment: float = 0.05

    # Bornes appliquées uniquement en mode "safe"
    safe_mode_max_adjustment: float = 0.06

    # En dessous de ce seuil (valeur absolue), aucun brouillon n'est créé
    min_adjustment: float = 0.01

    # TVA utilisée si la fiche tarifaire ne précise rien (en points)
    default_vat_pct: float = 19.0

    default_currency: str = "EUR"
    draft_notes: str = "AI Auto-Repricing"


# Surcharges par canal. Vide pour l'instant : tous les canaux partagent les
# seuils par défaut.
CHANNEL_OVERRIDES: Dict[str, Dict[str, float]] = {}


# Bandes de marge cible par canal (min, max), en points, pour la matrice de prix
CHANNEL_TARGET_MARGINS: Dict[str, Tuple[float, float]] = {
    "B2C": (35.0, 45.0),
    "AMAZON": (30.0, 38.0),
    "DEALER_BASIC": (22.0, 28.0),
    "DEALER_PLUS": (20.0, 26.0),
    "STAND": (18.0, 24.0),
    "DISTRIBUTOR": (15.0, 22.0),
}

# Baisse appliquée au net quand la marge dépasse la bande cible
ABOVE_BAND_REDUCTION = 0.05


def get_default_repricing_config() -> RepricingConfig:
    """Retourne une instance de configuration par défaut."""
    return RepricingConfig()


def get_repricing_config_for_channel(channel: Optional[str] = None) -> RepricingConfig:
    """
    Retourne la configuration à utiliser pour un canal donné.

    Les surcharges de `CHANNEL_OVERRIDES` sont appliquées par-dessus
    la configuration par défaut.
    """
    config = get_default_repricing_config()
    if not channel:
        return config

    overrides = CHANNEL_OVERRIDES.get(channel.strip().upper())
    if overrides:
        config = replace(config, **overrides)
    return config
