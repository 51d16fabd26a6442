"""
Clients API des fournisseurs de metadonnees.

Ce module fournit les adaptateurs pour communiquer avec les API externes:
- TMDB: The Movie Database pour les films
- TVDB: TheTVDB (API v3) pour les series TV
- TVmaze: series TV, API publique
- AniDB: anime (index de titres + API HTTP XML)

Infrastructure partagee:
- ResultCache: Cache memoire borne (LRU + TTL)
- RateLimiter: Fenetre glissante de N requetes par fournisseur
- RetryingHttpExecutor: Appel HTTP avec rate limiting, retry 429 et refresh 401
- RateLimitError / with_retry / request_with_retry: backoff exponentiel sur 429

Les clients implementent les ports definis dans core/ports/providers.py.
"""

from src.adapters.api.cache import ResultCache
from src.adapters.api.rate_limiter import RateLimiter
from src.adapters.api.retry import (
    RateLimitError,
    RetryingHttpExecutor,
    request_with_retry,
    with_retry,
)

__all__ = [
    "ResultCache",
    "RateLimiter",
    "RateLimitError",
    "RetryingHttpExecutor",
    "request_with_retry",
    "with_retry",
]
