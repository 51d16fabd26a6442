"""
Fixtures pytest partagees pour les tests MetaResolver.

Ce module contient les fixtures communes utilisees dans les tests:
- Horloge et sommeil factices (rate limiter et cache deterministes)
- Cache en memoire neuf par test
- Configurations de fournisseurs actives / desactivees
"""

import pytest
import respx

from src.adapters.api.cache import ResultCache
from src.core.value_objects.options import ProviderConfig
from src.utils.constants import ANIDB, TMDB, TVDB, TVMAZE


class FakeClock:
    """
    Horloge manuelle: le temps n'avance que par sleep() ou advance().

    Utilisable a la fois comme clock et comme sleep d'un RateLimiter.
    """

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolate_global_respx_router():
    """Annule les routes ajoutees au routeur respx global pendant un test."""
    respx.mock.snapshot()
    yield
    respx.mock.rollback()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Horloge factice demarrant a t=1000."""
    return FakeClock()


@pytest.fixture
def cache() -> ResultCache:
    """Cache en memoire neuf (defauts: 600 entrees, 5 minutes)."""
    return ResultCache()


@pytest.fixture
def tmdb_config() -> ProviderConfig:
    return ProviderConfig(TMDB, "The Movie Database", api_key="test-tmdb-key")


@pytest.fixture
def tvdb_config() -> ProviderConfig:
    return ProviderConfig(TVDB, "TheTVDB", api_key="test-api-key-12345")


@pytest.fixture
def tvmaze_config() -> ProviderConfig:
    return ProviderConfig(TVMAZE, "TVmaze", requires_api_key=False)


@pytest.fixture
def anidb_config() -> ProviderConfig:
    return ProviderConfig(ANIDB, "AniDB", api_key="testclient")
