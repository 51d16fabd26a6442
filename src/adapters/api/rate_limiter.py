"""
Limitation de debit cote fournisseur par fenetre glissante.

Chaque fournisseur possede son propre RateLimiter (pas de singleton global
partage entre fournisseurs). Le limiteur conserve les horodatages des N
dernieres requetes dans un anneau de capacite fixe: quand l'anneau est plein
et que la plus ancienne requete est plus jeune que la fenetre, le thread
appelant dort le temps restant, puis reverifie.

AniDB impose par exemple 1 requete toutes les 2 secondes
(https://wiki.anidb.net/w/HTTP_API_Definition).
"""

import threading
import time
from collections import deque
from typing import Callable, Optional

from loguru import logger

from src.core.errors import ScrapeCancelled

# Tranche de sommeil maximale quand une annulation peut survenir
CANCEL_POLL_INTERVAL = 0.1


class RateLimiter:
    """
    Anneau des N derniers horodatages de requete, protege par un verrou.

    L'attente est un sommeil bloquant du thread appelant (pas de thread
    d'ordonnancement). Le verrou est conserve pendant l'attente: les
    appelants concurrents sont servis les uns apres les autres.

    Args:
        capacity: Nombre de requetes autorisees par fenetre (0 = illimite)
        window: Duree de la fenetre en secondes
        clock: Horloge monotone injectable
        sleep: Fonction de sommeil injectable (tests sans attente reelle)
        name: Nom du fournisseur pour les logs
    """

    def __init__(
        self,
        capacity: int = 1,
        window: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "",
    ) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        if window < 0:
            raise ValueError(f"window must be >= 0, got {window}")
        self._capacity = capacity
        self._window = float(window)
        self._clock = clock
        self._sleep = sleep
        self._name = name
        self._lock = threading.Lock()
        self._timestamps: deque[float] = deque(maxlen=capacity or None)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window(self) -> float:
        return self._window

    def acquire(self, cancel: Optional[threading.Event] = None) -> None:
        """
        Attend si necessaire puis enregistre la requete courante.

        Args:
            cancel: Evenement d'annulation; s'il est leve pendant l'attente,
                    ScrapeCancelled est propage a l'appelant.

        Raises:
            ScrapeCancelled: si cancel est leve avant ou pendant l'attente
        """
        if self._capacity == 0:
            return

        with self._lock:
            if cancel is not None and cancel.is_set():
                raise ScrapeCancelled(f"request to {self._name or 'provider'} cancelled")

            if len(self._timestamps) == self._capacity:
                oldest = self._timestamps[0]
                remaining = self._window - (self._clock() - oldest)
                if remaining > 0:
                    logger.debug(
                        "connection limit reached, throttling",
                        provider=self._name,
                        wait=round(remaining, 3),
                    )
                # l'entree la plus ancienne peut encore etre dans la fenetre au reveil
                while remaining > 0:
                    self._wait(remaining, cancel)
                    remaining = self._window - (self._clock() - oldest)

            self._timestamps.append(self._clock())

    def _wait(self, seconds: float, cancel: Optional[threading.Event]) -> None:
        """Dort via le sommeil injecte; par tranches si l'attente est annulable."""
        if cancel is None:
            self._sleep(seconds)
            return
        self._sleep(min(seconds, CANCEL_POLL_INTERVAL))
        if cancel.is_set():
            raise ScrapeCancelled(f"request to {self._name or 'provider'} cancelled")

    def reset(self) -> None:
        """Oublie l'historique des requetes."""
        with self._lock:
            self._timestamps.clear()
