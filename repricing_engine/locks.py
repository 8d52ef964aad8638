"""
Verrous par produit.

Deux runs de repricing (ou une approbation et un run "auto") sur le même
produit doivent s'exécuter l'un après l'autre : la lecture du prix courant,
la création du brouillon et l'écriture du prix actif forment une séquence
ordonnée par produit. Aucun verrou n'est pris entre produits différents.

Les verrous sont réentrants : un thread qui tient déjà le verrou d'un
produit peut le reprendre sans se bloquer.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class ProductLockRegistry:
    """Un `threading.RLock` par product_id, créé à la demande."""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _get(self, product_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[product_id] = lock
            return lock

    @contextmanager
    def hold(self, product_id: str) -> Iterator[None]:
        lock = self._get(product_id)
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
