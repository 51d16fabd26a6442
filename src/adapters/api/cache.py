"""
Cache en memoire des resultats couteux (listes d'episodes, documents).

Le cache est borne en capacite (eviction LRU) et en duree de vie (TTL).
Il n'est jamais persiste: un redemarrage repart d'un cache vide.

Usage principal: eviter de re-telecharger une liste complete d'episodes
(plusieurs pages paginees) dans une courte fenetre de temps.

Valeurs par defaut:
- MAX_ENTRIES: 600 entrees
- DEFAULT_TTL: 5 minutes
"""

import copy
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from loguru import logger

from src.utils.constants import CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS


class ResultCache:
    """
    Cache thread-safe avec TTL et capacite bornee.

    Un unique verrou protege get/put (faible contention). Les valeurs sont
    copiees en profondeur a l'ecriture et a la lecture: un appelant qui
    modifie l'enregistrement recu ne corrompt ni le cache ni les autres
    requetes.

    Attributes:
        MAX_ENTRIES: Capacite par defaut
        DEFAULT_TTL: Duree de vie par defaut en secondes

    Example:
        cache = ResultCache(max_entries=600, ttl=300)
        key = ResultCache.make_key("tvdb", "81189", "fr")
        cache.put(key, episodes)
        episodes = cache.get(key)
    """

    MAX_ENTRIES = CACHE_MAX_ENTRIES
    DEFAULT_TTL = CACHE_TTL_SECONDS

    def __init__(
        self,
        max_entries: int = MAX_ENTRIES,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialise le cache.

        Args:
            max_entries: Nombre maximal d'entrees avant eviction LRU
            ttl: Duree de vie par defaut (secondes)
            clock: Horloge monotone injectable (tests deterministes)
        """
        self._max_entries = max(0, int(max_entries))
        self._ttl = float(ttl)
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (insertion, ttl, payload)
        self._data: "OrderedDict[str, tuple[float, float, Any]]" = OrderedDict()

    @staticmethod
    def make_key(provider_id: str, entity_id: str, language: str = "") -> str:
        """Cle composite fournisseur + entite + langue (ex: "tvdb:81189:fr")."""
        return f"{provider_id}:{entity_id}:{language}"

    def get(self, key: str) -> Optional[Any]:
        """
        Recupere une valeur du cache.

        Returns:
            Une copie de la valeur, ou None si absente ou expiree
        """
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            inserted, ttl, payload = entry
            if self._clock() - inserted >= ttl:
                del self._data[key]
                logger.debug("cache entry expired", key=key)
                return None
            self._data.move_to_end(key)
            return copy.deepcopy(payload)

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Stocke (ou ecrase) une valeur.

        Args:
            key: Cle composite (voir make_key)
            value: Valeur a stocker
            ttl: Duree de vie specifique, sinon la duree par defaut
        """
        effective_ttl = self._ttl if ttl is None else float(ttl)
        if effective_ttl <= 0 or self._max_entries == 0:
            return
        with self._lock:
            self._data[key] = (self._clock(), effective_ttl, copy.deepcopy(value))
            self._data.move_to_end(key)
            while len(self._data) > self._max_entries:
                evicted, _ = self._data.popitem(last=False)
                logger.debug("cache entry evicted", key=evicted)

    def clear(self) -> None:
        """Supprime toutes les entrees du cache."""
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
