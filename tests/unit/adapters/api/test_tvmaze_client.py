"""
Tests for TVmaze API client.

Uses respx to mock HTTP requests: search with perfect ID matches,
lookup by external IDs (redirect), show details with cast and images,
AIRED-only episode listing.
"""

from datetime import date

import httpx
import pytest
import respx

from src.adapters.api.cache import ResultCache
from src.adapters.api.tvmaze_client import TVMazeClient
from src.core.entities.metadata import ArtworkType, EpisodeGroup, EpisodeNumber, MediaType
from src.core.errors import ErrorKind, ScrapeError
from src.core.value_objects.options import ProviderConfig, ResolutionOptions
from tests.fixtures.tvmaze_responses import (
    TVMAZE_EPISODES_RESPONSE,
    TVMAZE_IMAGES_RESPONSE,
    TVMAZE_SEARCH_RESPONSE,
    TVMAZE_SHOW_RESPONSE,
)

BASE = "https://api.tvmaze.com"


@pytest.fixture
def client(tvmaze_config: ProviderConfig, cache: ResultCache):
    tvmaze = TVMazeClient(tvmaze_config, cache)
    yield tvmaze
    tvmaze.close()


def mock_show() -> respx.Route:
    route = respx.get(f"{BASE}/shows/169").mock(
        return_value=httpx.Response(200, json=TVMAZE_SHOW_RESPONSE)
    )
    respx.get(f"{BASE}/shows/169/images").mock(
        return_value=httpx.Response(200, json=TVMAZE_IMAGES_RESPONSE)
    )
    return route


class TestTVMazeClientSearch:
    """Recherche de series."""

    @respx.mock
    def test_search_scores_results(self, client: TVMazeClient) -> None:
        route = respx.get(f"{BASE}/search/shows").mock(
            return_value=httpx.Response(200, json=TVMAZE_SEARCH_RESPONSE)
        )

        results = client.search(ResolutionOptions(query="Breaking Bad"))

        assert [r.id for r in results] == ["169", "40305"]
        assert results[0].score == 1.0
        assert results[0].ids == {
            "tvmaze": "169",
            "imdb": "tt0903747",
            "tvdb": "81189",
            "tvrage": "18164",
        }
        assert results[0].overview == "Breaking Bad follows protagonist Walter White."
        assert results[1].score < 1.0
        assert route.calls[0].request.url.params["q"] == "Breaking Bad"

    @respx.mock
    def test_perfect_match_by_imdb_id(self, client: TVMazeClient) -> None:
        """Un candidat portant l'ID IMDb demande est un match parfait."""
        respx.get(f"{BASE}/search/shows").mock(
            return_value=httpx.Response(200, json=TVMAZE_SEARCH_RESPONSE)
        )

        results = client.search(ResolutionOptions(query="Breaking Bad", ids={"imdb": "tt9999999"}))

        scores = {r.id: r.score for r in results}
        assert scores["40305"] == 1.0

    @respx.mock(assert_all_called=False)
    def test_blank_query_makes_no_call(self, client: TVMazeClient) -> None:
        route = respx.get(f"{BASE}/search/shows")

        assert client.search(ResolutionOptions(query="")) == []
        assert not route.called


class TestTVMazeClientMetadata:
    """Details d'une serie."""

    @respx.mock
    def test_get_metadata(self, client: TVMazeClient) -> None:
        mock_show()

        record = client.get_metadata(ResolutionOptions(ids={"tvmaze": "169"}))

        assert record.provider_id == "tvmaze"
        assert record.title == "Breaking Bad"
        assert record.plot == "Breaking Bad follows protagonist Walter White & his partner."
        assert record.original_language == "English"
        assert record.runtime == 60
        assert record.year == 2008
        assert record.status == "Ended"
        assert record.production_companies == ["AMC"]
        assert record.countries == ["US"]
        assert record.ratings["tvmaze"].value == 9.2
        assert record.episode_groups == {EpisodeGroup.AIRED}
        assert [(p.name, p.role) for p in record.cast] == [
            ("Bryan Cranston", "Walter White"),
            ("Aaron Paul", "Jesse Pinkman"),
        ]
        assert [(a.type, a.width) for a in record.artwork] == [
            (ArtworkType.POSTER, 680),
            (ArtworkType.BACKGROUND, 1920),
        ]

    @respx.mock
    def test_embed_cast_requested(self, client: TVMazeClient) -> None:
        show_route = mock_show()

        client.get_metadata(ResolutionOptions(ids={"tvmaze": "169"}))

        assert show_route.calls[0].request.url.params["embed"] == "cast"

    @respx.mock
    def test_lookup_by_tvdb_id_follows_redirect(self, client: TVMazeClient) -> None:
        lookup = respx.get(f"{BASE}/lookup/shows").mock(
            return_value=httpx.Response(301, headers={"Location": f"{BASE}/shows/169"})
        )
        mock_show()

        record = client.get_metadata(ResolutionOptions(ids={"tvdb": "81189"}))

        assert record.get_id("tvmaze") == "169"
        assert lookup.calls[0].request.url.params["thetvdb"] == "81189"

    @respx.mock
    def test_lookup_not_found(self, client: TVMazeClient) -> None:
        respx.get(f"{BASE}/lookup/shows").mock(return_value=httpx.Response(404))

        with pytest.raises(ScrapeError) as exc_info:
            client.get_metadata(ResolutionOptions(ids={"imdb": "tt0000001"}))

        assert exc_info.value.kind is ErrorKind.NOTHING_FOUND

    @respx.mock
    def test_images_failure_keeps_metadata(self, client: TVMazeClient) -> None:
        respx.get(f"{BASE}/shows/169").mock(
            return_value=httpx.Response(200, json=TVMAZE_SHOW_RESPONSE)
        )
        respx.get(f"{BASE}/shows/169/images").mock(return_value=httpx.Response(503))

        record = client.get_metadata(ResolutionOptions(ids={"tvmaze": "169"}))

        assert record.title == "Breaking Bad"
        assert record.artwork == []

    def test_missing_identifier(self, client: TVMazeClient) -> None:
        with pytest.raises(ScrapeError) as exc_info:
            client.get_metadata(ResolutionOptions(ids={"anidb": "4598"}))

        assert exc_info.value.kind is ErrorKind.MISSING_IDENTIFIER


class TestTVMazeClientEpisodes:
    """Episodes (AIRED uniquement)."""

    @respx.mock
    def test_episode_list(self, client: TVMazeClient) -> None:
        respx.get(f"{BASE}/shows/169/episodes").mock(
            return_value=httpx.Response(200, json=TVMAZE_EPISODES_RESPONSE)
        )

        episodes = client.get_episode_list(ResolutionOptions(ids={"tvmaze": "169"}))

        pilot, second, special = episodes
        assert pilot.media_type is MediaType.EPISODE
        assert pilot.episode_numbers == {EpisodeGroup.AIRED: EpisodeNumber(1, 1)}
        assert pilot.plot == "Walter White, a struggling chemistry teacher..."
        assert pilot.ratings["tvmaze"].value == 8.3
        assert pilot.artwork[0].type is ArtworkType.THUMB
        assert second.ratings == {}
        # sans numero: aucun groupe, jamais (0, 0)
        assert special.episode_numbers == {}

    @respx.mock
    def test_get_episode_by_numbers(self, client: TVMazeClient) -> None:
        respx.get(f"{BASE}/shows/169/episodes").mock(
            return_value=httpx.Response(200, json=TVMAZE_EPISODES_RESPONSE)
        )

        episode = client.get_episode(ResolutionOptions(ids={"tvmaze": "169"}, season=1, episode=2))

        assert episode.title == "Cat's in the Bag..."

    @respx.mock
    def test_absolute_numbering_unsupported(self, client: TVMazeClient) -> None:
        respx.get(f"{BASE}/shows/169/episodes").mock(
            return_value=httpx.Response(200, json=TVMAZE_EPISODES_RESPONSE)
        )

        with pytest.raises(ScrapeError) as exc_info:
            client.get_episode(
                ResolutionOptions(
                    ids={"tvmaze": "169"}, season=1, episode=1, episode_group=EpisodeGroup.ABSOLUTE
                )
            )

        assert exc_info.value.kind is ErrorKind.NOTHING_FOUND

    @respx.mock
    def test_get_episode_by_air_date(self, client: TVMazeClient) -> None:
        respx.get(f"{BASE}/shows/169/episodes").mock(
            return_value=httpx.Response(200, json=TVMAZE_EPISODES_RESPONSE)
        )

        episode = client.get_episode(
            ResolutionOptions(ids={"tvmaze": "169"}, air_date=date(2008, 1, 27))
        )

        assert episode.get_id("tvmaze") == "12193"

    @respx.mock
    def test_episode_list_cached(self, client: TVMazeClient) -> None:
        route = respx.get(f"{BASE}/shows/169/episodes").mock(
            return_value=httpx.Response(200, json=TVMAZE_EPISODES_RESPONSE)
        )
        options = ResolutionOptions(ids={"tvmaze": "169"})

        client.get_episode_list(options)
        client.get_episode_list(options)

        assert route.call_count == 1
