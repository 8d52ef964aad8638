"""
Configuration d'environnement du moteur de repricing.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Charger .env depuis la racine du projet
project_root = Path(__file__).parent.parent
load_dotenv(dotenv_path=project_root / ".env")


@dataclass
class Settings:
    """Configuration globale du moteur."""

    # Base de données
    supabase_url: str
    supabase_key: str

    # Devise de base des prix internes
    base_currency: str = "EUR"

    # Canal et mode utilisés quand la requête ne précise rien
    default_channel: str = "B2C"
    default_mode: str = "safe"

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Crée une instance Settings depuis les variables d'environnement."""
        return cls(
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", os.getenv("SUPABASE_KEY", "")),
            base_currency=os.getenv("BASE_CURRENCY", "EUR"),
            default_channel=os.getenv("REPRICING_DEFAULT_CHANNEL", "B2C"),
            default_mode=os.getenv("REPRICING_DEFAULT_MODE", "safe"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def configure_logging(settings: Settings) -> None:
    """
    Configure le logging racine pour les points d'entrée (serveur, scripts).

    Les logs partent sur stderr : stdout est réservé aux réponses JSON.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
