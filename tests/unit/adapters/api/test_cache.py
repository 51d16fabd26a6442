"""
Tests unitaires du cache en memoire ResultCache.

Ces tests verifient:
- get/put et la cle composite fournisseur:entite:langue
- L'expiration par TTL (horloge injectee)
- L'eviction LRU au-dela de la capacite
- L'independance des copies retournees
"""

from src.adapters.api.cache import ResultCache
from src.core.entities.metadata import MetadataRecord
from tests.conftest import FakeClock


class TestResultCacheBasics:
    """Tests des operations de base."""

    def test_make_key(self) -> None:
        assert ResultCache.make_key("tvdb", "81189", "fr") == "tvdb:81189:fr"
        assert ResultCache.make_key("anidb", "4598") == "anidb:4598:"

    def test_get_missing_returns_none(self, cache: ResultCache) -> None:
        assert cache.get("tvdb:1:en") is None

    def test_put_then_get(self, cache: ResultCache) -> None:
        cache.put("tvdb:1:en", {"title": "Lost"})

        assert cache.get("tvdb:1:en") == {"title": "Lost"}
        assert len(cache) == 1

    def test_put_overwrites(self, cache: ResultCache) -> None:
        cache.put("k", 1)
        cache.put("k", 2)

        assert cache.get("k") == 2
        assert len(cache) == 1

    def test_clear(self, cache: ResultCache) -> None:
        cache.put("a", 1)
        cache.put("b", 2)

        cache.clear()

        assert len(cache) == 0
        assert cache.get("a") is None

    def test_defaults(self) -> None:
        assert ResultCache.MAX_ENTRIES == 600
        assert ResultCache.DEFAULT_TTL == 300


class TestResultCacheExpiry:
    """Tests du TTL."""

    def test_entry_expires_after_ttl(self, fake_clock: FakeClock) -> None:
        cache = ResultCache(ttl=300, clock=fake_clock)
        cache.put("k", "value")

        fake_clock.advance(299)
        assert cache.get("k") == "value"

        fake_clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self, fake_clock: FakeClock) -> None:
        cache = ResultCache(ttl=300, clock=fake_clock)
        cache.put("short", 1, ttl=10)
        cache.put("long", 2)

        fake_clock.advance(11)

        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_zero_ttl_disables_storage(self, fake_clock: FakeClock) -> None:
        cache = ResultCache(ttl=0, clock=fake_clock)
        cache.put("k", 1)

        assert cache.get("k") is None


class TestResultCacheEviction:
    """Tests de l'eviction LRU."""

    def test_least_recently_used_evicted(self) -> None:
        cache = ResultCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        # "a" devient le plus recemment utilise
        assert cache.get("a") == 1

        cache.put("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_zero_capacity_stores_nothing(self) -> None:
        cache = ResultCache(max_entries=0)
        cache.put("a", 1)

        assert len(cache) == 0


class TestResultCacheCopies:
    """Les enregistrements ne sont jamais partages entre requetes."""

    def test_mutating_returned_value_does_not_affect_cache(self, cache: ResultCache) -> None:
        episodes = [MetadataRecord(provider_id="tvdb", title="Pilot")]
        cache.put("tvdb:81189:en", episodes)

        first = cache.get("tvdb:81189:en")
        first[0].title = "Changed"
        second = cache.get("tvdb:81189:en")

        assert second[0].title == "Pilot"
        assert first[0] is not second[0]

    def test_mutating_stored_value_does_not_affect_cache(self, cache: ResultCache) -> None:
        record = MetadataRecord(provider_id="tvdb", title="Pilot")
        cache.put("k", record)

        record.title = "Changed"

        assert cache.get("k").title == "Pilot"
