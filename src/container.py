"""
Container d'injection de dependances via dependency-injector.

Fournit une gestion centralisee des dependances pour la CLI et les hotes
qui embarquent le moteur: un seul cache partage, un rate limiter par
fournisseur (jamais partage entre fournisseurs), un client par fournisseur.
"""

from dependency_injector import containers, providers

from .adapters.api.anidb_client import AniDbClient
from .adapters.api.cache import ResultCache
from .adapters.api.rate_limiter import RateLimiter
from .adapters.api.tmdb_client import TMDBClient
from .adapters.api.tmdb_tv_client import TMDBTvClient
from .adapters.api.tvdb_client import TVDBClient
from .adapters.api.tvmaze_client import TVMazeClient
from .config import Settings
from .utils.constants import ANIDB, TMDB, TVDB, TVMAZE


class Container(containers.DeclarativeContainer):
    """Container DI de l'application.

    Utilisation :
        container = Container()
        client = container.tvdb_client()
        episodes = client.get_episode_list(options)

    Les clients sont des Singletons: les appels concurrents de plusieurs
    threads partagent le meme rate limiter et le meme cache.
    """

    # Configuration - singleton charge une seule fois
    config = providers.Singleton(Settings)

    # Cache en memoire - Singleton pour partage entre clients
    result_cache = providers.Singleton(
        ResultCache,
        max_entries=config.provided.cache_max_entries,
        ttl=config.provided.cache_ttl_seconds,
    )

    # Rate limiters - un par fournisseur, vivant pour la duree du processus
    tmdb_rate_limiter = providers.Singleton(
        RateLimiter,
        capacity=config.provided.tmdb_rate_capacity,
        window=config.provided.tmdb_rate_window,
        name=TMDB,
    )
    tvdb_rate_limiter = providers.Singleton(
        RateLimiter,
        capacity=config.provided.tvdb_rate_capacity,
        window=config.provided.tvdb_rate_window,
        name=TVDB,
    )
    tvmaze_rate_limiter = providers.Singleton(
        RateLimiter,
        capacity=config.provided.tvmaze_rate_capacity,
        window=config.provided.tvmaze_rate_window,
        name=TVMAZE,
    )
    anidb_rate_limiter = providers.Singleton(
        RateLimiter,
        capacity=config.provided.anidb_rate_capacity,
        window=config.provided.anidb_rate_window,
        name=ANIDB,
    )

    # Clients fournisseurs - Singleton avec configuration en lecture seule
    # Sans credential, le client est cree mais echoue en FEATURE_DISABLED
    tmdb_client = providers.Singleton(
        TMDBClient,
        config=config.provided.provider_config.call(TMDB),
        cache=result_cache,
        rate_limiter=tmdb_rate_limiter,
        timeout=config.provided.http_timeout,
    )

    # Films et series TMDB partagent la cle et le rate limiter
    tmdb_tv_client = providers.Singleton(
        TMDBTvClient,
        config=config.provided.provider_config.call(TMDB),
        cache=result_cache,
        rate_limiter=tmdb_rate_limiter,
        timeout=config.provided.http_timeout,
    )

    tvdb_client = providers.Singleton(
        TVDBClient,
        config=config.provided.provider_config.call(TVDB),
        cache=result_cache,
        rate_limiter=tvdb_rate_limiter,
        timeout=config.provided.http_timeout,
    )

    tvmaze_client = providers.Singleton(
        TVMazeClient,
        config=config.provided.provider_config.call(TVMAZE),
        cache=result_cache,
        rate_limiter=tvmaze_rate_limiter,
        timeout=config.provided.http_timeout,
    )

    anidb_client = providers.Singleton(
        AniDbClient,
        config=config.provided.provider_config.call(ANIDB),
        cache=result_cache,
        rate_limiter=anidb_rate_limiter,
        client_version=config.provided.anidb_client_version,
        timeout=config.provided.http_timeout,
    )
