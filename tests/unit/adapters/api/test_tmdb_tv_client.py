"""
Tests for TMDB TV client.

Uses respx to mock HTTP requests: search by id and by title (all pages),
show details, season-by-season episode listing and episode lookup.
"""

from datetime import date

import httpx
import pytest
import respx

from src.adapters.api.cache import ResultCache
from src.adapters.api.tmdb_tv_client import TMDBTvClient
from src.core.entities.metadata import (
    ArtworkType,
    EpisodeGroup,
    EpisodeNumber,
    MediaType,
    MetadataRecord,
    PersonType,
)
from src.core.errors import ErrorKind, ScrapeError
from src.core.ports.providers import (
    IEpisodeListProvider,
    IIdProvider,
    IMetadataProvider,
    IRatingProvider,
    ISearchProvider,
)
from src.core.value_objects.options import ProviderConfig, ResolutionOptions
from tests.fixtures.tmdb_responses import (
    TMDB_FIND_EMPTY_RESPONSE,
    TMDB_NOT_FOUND_RESPONSE,
    TMDB_TV_DETAILS_RESPONSE,
    TMDB_TV_FIND_RESPONSE,
    TMDB_TV_SEARCH_PAGE_1_RESPONSE,
    TMDB_TV_SEARCH_PAGE_2_RESPONSE,
    TMDB_TV_SEASON_0_RESPONSE,
    TMDB_TV_SEASON_1_RESPONSE,
    TMDB_TV_SEASON_2_RESPONSE,
    TMDB_TV_SUMMARY_RESPONSE,
    TMDB_TV_UNTRANSLATED_RESPONSE,
)

BASE = "https://api.themoviedb.org/3"


@pytest.fixture
def client(tmdb_config: ProviderConfig, cache: ResultCache):
    tmdb = TMDBTvClient(tmdb_config, cache)
    yield tmdb
    tmdb.close()


def mock_seasons() -> list[respx.Route]:
    return [
        respx.get(f"{BASE}/tv/1447/season/{number}").mock(
            return_value=httpx.Response(200, json=body)
        )
        for number, body in (
            (0, TMDB_TV_SEASON_0_RESPONSE),
            (1, TMDB_TV_SEASON_1_RESPONSE),
            (2, TMDB_TV_SEASON_2_RESPONSE),
        )
    ]


class TestTMDBTvClientInterface:
    def test_implements_ports(self, client: TMDBTvClient) -> None:
        assert isinstance(client, ISearchProvider)
        assert isinstance(client, IMetadataProvider)
        assert isinstance(client, IEpisodeListProvider)
        assert isinstance(client, IRatingProvider)
        assert isinstance(client, IIdProvider)
        assert client.provider_id == "tmdb"

    def test_disabled_without_key(self, cache: ResultCache) -> None:
        tmdb = TMDBTvClient(ProviderConfig("tmdb", "TMDB"), cache)

        with pytest.raises(ScrapeError) as exc_info:
            tmdb.get_episode_list(ResolutionOptions(ids={"tmdb": "1447"}))

        assert exc_info.value.kind is ErrorKind.FEATURE_DISABLED


class TestTMDBTvClientSearch:
    @respx.mock
    def test_search_reads_all_pages(self, client: TMDBTvClient) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["page"] == "1":
                return httpx.Response(200, json=TMDB_TV_SEARCH_PAGE_1_RESPONSE)
            return httpx.Response(200, json=TMDB_TV_SEARCH_PAGE_2_RESPONSE)

        route = respx.get(f"{BASE}/search/tv").mock(side_effect=handler)

        results = client.search(ResolutionOptions(query="Psych"))

        assert route.call_count == 2
        assert results[0].id == "1447"
        assert results[0].score == 1.0
        assert results[0].year == 2006
        assert results[0].poster_url.startswith("https://image.tmdb.org/t/p/w500/")
        assert {r.id for r in results} == {"1447", "61892", "95403"}

    @respx.mock(assert_all_called=False)
    def test_search_by_tmdb_id_is_perfect_match(
        self, client: TMDBTvClient, respx_mock: respx.MockRouter
    ) -> None:
        search_route = respx_mock.get(f"{BASE}/search/tv")
        respx_mock.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )

        results = client.search(ResolutionOptions(query="Psych", ids={"tmdb": "1447"}))

        assert [(r.id, r.score) for r in results] == [("1447", 1.0)]
        assert not search_route.called

    @respx.mock
    def test_search_by_imdb_id_uses_find(self, client: TMDBTvClient) -> None:
        route = respx.get(f"{BASE}/find/tt0491738").mock(
            return_value=httpx.Response(200, json=TMDB_TV_FIND_RESPONSE)
        )

        results = client.search(ResolutionOptions(ids={"imdb": "tt0491738"}))

        assert [r.id for r in results] == ["1447"]
        assert route.calls[0].request.url.params["external_source"] == "imdb_id"

    @respx.mock
    def test_unknown_id_falls_back_to_title(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/find/tt9999999").mock(
            return_value=httpx.Response(200, json=TMDB_FIND_EMPTY_RESPONSE)
        )
        respx.get(f"{BASE}/search/tv").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SEARCH_PAGE_2_RESPONSE)
        )

        results = client.search(ResolutionOptions(query="Psychoville", ids={"imdb": "tt9999999"}))

        assert [r.id for r in results] == ["95403"]

    @respx.mock(assert_all_called=False)
    def test_blank_query_without_id(self, client: TMDBTvClient) -> None:
        route = respx.get(f"{BASE}/search/tv")

        assert client.search(ResolutionOptions(query="   ")) == []
        assert not route.called


class TestTMDBTvClientMetadata:
    @respx.mock
    def test_show_details(self, client: TMDBTvClient) -> None:
        route = respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_DETAILS_RESPONSE)
        )

        record = client.get_metadata(ResolutionOptions(ids={"tmdb": "1447"}))

        assert record.media_type is MediaType.TV_SHOW
        assert record.title == "Psych"
        assert record.year == 2006
        assert record.release_date == date(2006, 7, 7)
        assert record.runtime == 44
        assert record.status == "Ended"
        assert record.ids == {"tmdb": "1447", "imdb": "tt0491738", "tvdb": "79335", "tvrage": "5725"}
        assert record.ratings["tmdb"].value == 7.9
        assert record.ratings["tmdb"].votes == 1250
        assert record.genres == {"Comedy", "Crime"}
        assert record.certifications == ["TV-PG"]
        assert record.tags == ["police", "detective"]
        assert "USA Network" in record.production_companies
        assert record.episode_groups == {EpisodeGroup.AIRED}
        actors = [p for p in record.cast if p.type is PersonType.ACTOR]
        assert actors[0].name == "James Roday Rodriguez"
        assert actors[0].role == "Shawn Spencer"
        assert {a.type for a in record.artwork} == {ArtworkType.POSTER, ArtworkType.BACKGROUND}
        params = route.calls[0].request.url.params
        assert params["append_to_response"] == "credits,external_ids,content_ratings,keywords"

    @respx.mock
    def test_imdb_id_converted_through_find(self, client: TMDBTvClient) -> None:
        find_route = respx.get(f"{BASE}/find/tt0491738").mock(
            return_value=httpx.Response(200, json=TMDB_TV_FIND_RESPONSE)
        )
        respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_DETAILS_RESPONSE)
        )

        record = client.get_metadata(ResolutionOptions(ids={"imdb": "tt0491738"}))

        assert record.get_id("tmdb") == "1447"
        assert find_route.call_count == 1

    @respx.mock
    def test_unknown_imdb_id(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/find/tt9999999").mock(
            return_value=httpx.Response(200, json=TMDB_FIND_EMPTY_RESPONSE)
        )

        with pytest.raises(ScrapeError) as exc_info:
            client.get_metadata(ResolutionOptions(ids={"imdb": "tt9999999"}))

        assert exc_info.value.kind is ErrorKind.NOTHING_FOUND

    @respx.mock
    def test_show_not_found(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/tv/999999").mock(
            return_value=httpx.Response(404, json=TMDB_NOT_FOUND_RESPONSE)
        )

        with pytest.raises(ScrapeError) as exc_info:
            client.get_metadata(ResolutionOptions(ids={"tmdb": "999999"}))

        assert exc_info.value.kind is ErrorKind.NOTHING_FOUND

    def test_missing_identifier(self, client: TMDBTvClient) -> None:
        with pytest.raises(ScrapeError) as exc_info:
            client.get_metadata(ResolutionOptions(query="Psych"))

        assert exc_info.value.kind is ErrorKind.MISSING_IDENTIFIER

    @respx.mock
    def test_blank_overview_filled_from_english(self, client: TMDBTvClient) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["language"] == "fr":
                return httpx.Response(200, json=TMDB_TV_UNTRANSLATED_RESPONSE)
            return httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)

        route = respx.get(f"{BASE}/tv/1447").mock(side_effect=handler)

        record = client.get_metadata(ResolutionOptions(ids={"tmdb": "1447"}, language="fr"))

        assert record.title == "Psych : Enquêteur malgré lui"
        assert record.plot.startswith("Thanks to his police officer")
        assert route.call_count == 2


class TestTMDBTvClientEpisodes:
    @respx.mock
    def test_episode_list_season_by_season(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )
        season_routes = mock_seasons()

        episodes = client.get_episode_list(ResolutionOptions(ids={"tmdb": "1447"}))

        assert len(episodes) == 4
        assert all(route.call_count == 1 for route in season_routes)
        pilot = next(e for e in episodes if e.title == "Pilot")
        assert pilot.media_type is MediaType.EPISODE
        assert pilot.episode_numbers == {EpisodeGroup.AIRED: EpisodeNumber(1, 1)}
        assert pilot.get_id("tmdb") == "61994"
        assert pilot.release_date == date(2006, 7, 7)
        assert pilot.runtime == 60
        assert pilot.ratings["tmdb"].votes == 31
        assert pilot.artwork[0].type is ArtworkType.THUMB
        special = next(e for e in episodes if e.title == "Psych: The Musical")
        assert special.episode_numbers[EpisodeGroup.AIRED] == EpisodeNumber(0, 1)
        assert "tmdb" not in special.ratings

    @respx.mock
    def test_episode_list_cached(self, client: TMDBTvClient) -> None:
        show_route = respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )
        season_routes = mock_seasons()

        client.get_episode_list(ResolutionOptions(ids={"tmdb": "1447"}))
        client.get_episode_list(ResolutionOptions(ids={"tmdb": "1447"}))

        assert show_route.call_count == 1
        assert all(route.call_count == 1 for route in season_routes)

    @respx.mock
    def test_missing_season_is_nothing_found(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )
        respx.get(f"{BASE}/tv/1447/season/0").mock(
            return_value=httpx.Response(404, json=TMDB_NOT_FOUND_RESPONSE)
        )

        with pytest.raises(ScrapeError) as exc_info:
            client.get_episode_list(ResolutionOptions(ids={"tmdb": "1447"}))

        assert exc_info.value.kind is ErrorKind.NOTHING_FOUND

    @respx.mock
    def test_get_episode_by_numbers(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )
        mock_seasons()

        episode = client.get_episode(
            ResolutionOptions(ids={"tmdb": "1447"}, season=2, episode=1)
        )

        assert episode.title == "American Duos"

    @respx.mock
    def test_get_metadata_for_episode_by_air_date(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )
        mock_seasons()
        show = MetadataRecord(provider_id="tmdb", ids={"tmdb": "1447"})

        episode = client.get_metadata(
            ResolutionOptions(
                metadata=show, media_type=MediaType.EPISODE, air_date=date(2006, 7, 14)
            )
        )

        assert episode.title == "Spellingg Bee"

    @respx.mock
    def test_get_episode_by_episode_id(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )
        mock_seasons()
        show = MetadataRecord(provider_id="tmdb", ids={"tmdb": "1447"})

        episode = client.get_episode(ResolutionOptions(metadata=show, ids={"tmdb": "62013"}))

        assert episode.episode_numbers[EpisodeGroup.AIRED] == EpisodeNumber(2, 1)

    def test_episode_request_without_numbers(self, client: TMDBTvClient) -> None:
        with pytest.raises(ScrapeError) as exc_info:
            client.get_episode(ResolutionOptions(ids={"tmdb": "1447"}))

        assert exc_info.value.kind is ErrorKind.MISSING_IDENTIFIER

    @respx.mock
    def test_unknown_episode(self, client: TMDBTvClient) -> None:
        respx.get(f"{BASE}/tv/1447").mock(
            return_value=httpx.Response(200, json=TMDB_TV_SUMMARY_RESPONSE)
        )
        mock_seasons()

        with pytest.raises(ScrapeError) as exc_info:
            client.get_episode(ResolutionOptions(ids={"tmdb": "1447"}, season=9, episode=9))

        assert exc_info.value.kind is ErrorKind.NOTHING_FOUND
