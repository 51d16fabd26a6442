"""
Client TMDB pour les series TV.

Meme API et meme credential que TMDBClient (films). TMDB n'expose pas
de liste complete des episodes: le resume de la serie donne les saisons,
puis chaque saison est recuperee separement. Numerotation AIRED uniquement.

Usage:
    client = TMDBTvClient(config, cache=ResultCache())
    episodes = client.get_episode_list(ResolutionOptions(ids={"tmdb": "1447"}))
    client.close()
"""

import threading
from typing import Any, Optional

import httpx
from loguru import logger

from src.adapters.api.cache import ResultCache
from src.adapters.api.rate_limiter import RateLimiter
from src.adapters.api.retry import RetryingHttpExecutor
from src.adapters.api.tmdb_client import (
    TMDB_BACKDROP_BASE_URL,
    TMDB_IMAGE_BASE_URL,
    create_tmdb_http_client,
    parse_tmdb_credits,
    tmdb_error_body,
)
from src.core.entities.metadata import (
    Artwork,
    ArtworkType,
    EpisodeGroup,
    MediaType,
    MetadataRecord,
    Rating,
    SearchCandidate,
)
from src.core.errors import ScrapeError, feature_disabled, nothing_found
from src.core.ports.providers import (
    IEpisodeListProvider,
    IIdProvider,
    IMetadataProvider,
    IRatingProvider,
    ISearchProvider,
)
from src.core.value_objects.options import ProviderConfig, ResolutionOptions
from src.services.episode_numbering import EpisodeNumberingNormalizer, RawEpisodeNumbering
from src.services.identity import IdentityResolver, ResolvedId
from src.services.language_fallback import LanguageFallbackResolver
from src.services.matcher import SearchScorer
from src.utils.constants import IMDB, TMDB, TVDB, TVRAGE
from src.utils.helpers import (
    clean_title,
    is_blank,
    parse_date,
    parse_float,
    parse_int,
    parse_optional_int,
    parse_year,
)

_FIND_SOURCES = {IMDB: "imdb_id", TVDB: "tvdb_id", TVRAGE: "tvrage_id"}


class TMDBTvClient(
    ISearchProvider, IMetadataProvider, IEpisodeListProvider, IRatingProvider, IIdProvider
):
    """
    Client API TMDB pour les series et leurs episodes.

    - Recherche par ID (TMDB direct, IMDb/TVDB via /find) puis par titre
    - Details de la serie (credits, IDs externes, classifications, mots-cles)
    - Liste des episodes saison par saison, mise en cache
    - Repli de langue sur titre et synopsis de la serie

    Attributes:
        SUPPORTED_GROUPS: AIRED uniquement
    """

    SUPPORTED_GROUPS = frozenset({EpisodeGroup.AIRED})

    def __init__(
        self,
        config: ProviderConfig,
        cache: ResultCache,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 30.0,
    ) -> None:
        self._config = config
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._timeout = timeout
        self._client: Optional[httpx.Client] = None
        self._executor: Optional[RetryingHttpExecutor] = None
        self._client_lock = threading.Lock()
        self._identity = IdentityResolver(TMDB, supported=(IMDB, TVDB, TVRAGE))
        self._fallback = LanguageFallbackResolver(config.title_fallback, config.fallback_language)
        self._normalizer = EpisodeNumberingNormalizer(self.SUPPORTED_GROUPS)
        self._scorer = SearchScorer()

    @property
    def provider_id(self) -> str:
        return TMDB

    def _check_enabled(self) -> None:
        if not self._config.enabled:
            raise feature_disabled(TMDB)

    def _get_executor(self) -> RetryingHttpExecutor:
        self._check_enabled()
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = create_tmdb_http_client(self._config.api_key or "", self._timeout)
                self._executor = RetryingHttpExecutor(
                    self._client,
                    TMDB,
                    rate_limiter=self._rate_limiter,
                    error_body=tmdb_error_body,
                )
            return self._executor

    # ---- search -------------------------------------------------------

    def search(self, options: ResolutionOptions) -> list[SearchCandidate]:
        """
        Recherche des series.

        Un ID connu (TMDB, IMDb ou TVDB) est resolu directement avec un
        score de 1.0; sinon recherche texte sur toutes les pages.
        """
        resolved = self._identity.select(options.ids)
        if resolved is not None:
            candidates = self._search_by_id(resolved, options)
            if candidates:
                return candidates

        if is_blank(options.query):
            return []
        query = options.query.strip()
        executor = self._get_executor()

        candidates = []
        page, total_pages = 1, 1
        while page <= total_pages:
            data = executor.get_json(
                "/search/tv",
                cancel=options.cancel,
                params={"query": query, "language": options.language, "page": page},
            )
            for item in data.get("results", []):
                if item.get("id"):
                    candidates.append(self._scorer.score_candidate(query, self._to_candidate(item)))
            total_pages = parse_int(data.get("total_pages"), field="total_pages")
            page += 1

        logger.debug("tmdb tv search", query=query, results=len(candidates))
        return self._scorer.rank(candidates)

    def _search_by_id(self, resolved: ResolvedId, options: ResolutionOptions) -> list[SearchCandidate]:
        if resolved.namespace == TMDB:
            try:
                shows = [self._fetch_show(resolved.value, options, full=False)]
            except ScrapeError as e:
                if not e.is_not_found:
                    raise
                logger.debug("tmdb id not found, searching by title", id=resolved.value)
                return []
        else:
            shows = self._find(resolved, options)

        candidates = []
        for show in shows:
            candidate = self._to_candidate(show)
            candidate.score = 1.0
            candidates.append(candidate)
        return self._scorer.rank(candidates)

    def _to_candidate(self, show: dict[str, Any]) -> SearchCandidate:
        poster_path = show.get("poster_path")
        return SearchCandidate(
            id=str(show["id"]),
            title=clean_title(show.get("name")),
            original_title=clean_title(show.get("original_name")),
            year=parse_year(show.get("first_air_date")),
            poster_url=f"{TMDB_IMAGE_BASE_URL}{poster_path}" if poster_path else None,
            provider_id=TMDB,
            overview=show.get("overview") or "",
            ids={TMDB: str(show["id"])},
        )

    def _find(self, resolved: ResolvedId, options: ResolutionOptions) -> list[dict[str, Any]]:
        data = self._get_executor().get_json(
            f"/find/{resolved.value}",
            cancel=options.cancel,
            params={
                "external_source": _FIND_SOURCES[resolved.namespace],
                "language": options.language,
            },
        )
        return [show for show in data.get("tv_results", []) if show.get("id")]

    def _to_tmdb_id(self, resolved: ResolvedId, options: ResolutionOptions) -> str:
        """
        Convertit un ID externe en ID TMDB via /find/{external_id}.

        Raises:
            ScrapeError: NOTHING_FOUND si TMDB ne connait pas cet ID
        """
        if resolved.namespace == TMDB:
            return resolved.value
        shows = self._find(resolved, options)
        if not shows:
            raise nothing_found(
                f"no show for {resolved.namespace} id {resolved.value}", provider_id=TMDB
            )
        return str(shows[0]["id"])

    # ---- show ---------------------------------------------------------

    def get_metadata(self, options: ResolutionOptions) -> MetadataRecord:
        """
        Details complets d'une serie (ou d'un episode si media_type=EPISODE).

        Raises:
            ScrapeError: MISSING_IDENTIFIER, NOTHING_FOUND, TRANSPORT, FEATURE_DISABLED
        """
        if options.media_type is MediaType.EPISODE:
            return self.get_episode(options)

        self._check_enabled()
        tmdb_id = self._to_tmdb_id(self._identity.resolve(options), options)
        record = self._parse_show(self._fetch_show(tmdb_id, options, full=True), options)

        def fetch(language: str) -> Optional[MetadataRecord]:
            translated = self._fetch_show(tmdb_id, options.with_language(language), full=False)
            return self._parse_show(translated, options)

        self._fallback.resolve(record, options.language, fetch)
        logger.debug("tmdb tv metadata", id=tmdb_id, title=record.title)
        return record

    def get_ratings(self, options: ResolutionOptions) -> list[Rating]:
        return list(self.get_metadata(options).ratings.values())

    def get_media_ids(self, options: ResolutionOptions) -> dict[str, str]:
        return dict(self.get_metadata(options).ids)

    def _fetch_show(self, tmdb_id: str, options: ResolutionOptions, full: bool) -> dict[str, Any]:
        """
        Document /tv/{id} (cache par ID et langue). Un 404 devient NOTHING_FOUND.

        Le document resume (full=False) suffit pour la liste des saisons.
        """
        entity = f"tv/{tmdb_id}" if full else f"tv/{tmdb_id}/summary"
        cache_key = ResultCache.make_key(TMDB, entity, options.language)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        params = {"language": options.language}
        if full:
            params["append_to_response"] = "credits,external_ids,content_ratings,keywords"
        try:
            data = self._get_executor().get_json(
                f"/tv/{tmdb_id}", cancel=options.cancel, params=params
            )
        except ScrapeError as e:
            if e.is_not_found:
                raise nothing_found(f"show {tmdb_id} not found", provider_id=TMDB) from e
            raise

        self._cache.put(cache_key, data)
        return data

    def _parse_show(self, data: dict[str, Any], options: ResolutionOptions) -> MetadataRecord:
        record = MetadataRecord(provider_id=TMDB, media_type=MediaType.TV_SHOW)
        record.set_id(TMDB, data.get("id"))
        record.title = clean_title(data.get("name"))
        record.original_title = clean_title(data.get("original_name"))
        record.original_language = data.get("original_language") or ""
        record.plot = (data.get("overview") or "").strip()
        record.tagline = (data.get("tagline") or "").strip()
        record.status = data.get("status") or ""
        record.release_date = parse_date(data.get("first_air_date"))
        record.year = parse_year(data.get("first_air_date"))
        run_times = data.get("episode_run_time") or []
        if run_times:
            record.runtime = parse_int(run_times[0], field="episode_run_time")
        record.episode_groups = set(self.SUPPORTED_GROUPS)

        external_ids = data.get("external_ids") or {}
        record.set_id(IMDB, external_ids.get("imdb_id"))
        if parse_int(external_ids.get("tvdb_id"), field="tvdb_id") > 0:
            record.set_id(TVDB, external_ids["tvdb_id"])
        if parse_int(external_ids.get("tvrage_id"), field="tvrage_id") > 0:
            record.set_id(TVRAGE, external_ids["tvrage_id"])

        vote_count = parse_int(data.get("vote_count"), field="vote_count")
        if vote_count > 0:
            record.add_rating(
                Rating(TMDB, parse_float(data.get("vote_average"), field="vote_average"), vote_count)
            )

        record.genres = {g["name"] for g in data.get("genres", []) if g.get("name")}
        record.countries = [c for c in data.get("origin_country") or [] if c]
        for company in data.get("production_companies", []):
            record.add_production_company(company.get("name"))
        for network in data.get("networks", []):
            record.add_production_company(network.get("name"))

        for rating in (data.get("content_ratings") or {}).get("results", []):
            if rating.get("iso_3166_1") == options.certification_country:
                record.add_certification((rating.get("rating") or "").strip())
        for keyword in (data.get("keywords") or {}).get("results", []):
            if keyword.get("name"):
                record.add_tag(keyword["name"])

        parse_tmdb_credits(record, data.get("credits") or {})

        poster_path = data.get("poster_path")
        if poster_path:
            record.artwork.append(Artwork(ArtworkType.POSTER, f"{TMDB_IMAGE_BASE_URL}{poster_path}"))
        backdrop_path = data.get("backdrop_path")
        if backdrop_path:
            record.artwork.append(
                Artwork(ArtworkType.BACKGROUND, f"{TMDB_BACKDROP_BASE_URL}{backdrop_path}")
            )
        return record

    # ---- episodes -----------------------------------------------------

    def get_episode_list(self, options: ResolutionOptions) -> list[MetadataRecord]:
        """
        Tous les episodes de la serie, saison par saison (speciaux compris).

        Raises:
            ScrapeError: MISSING_IDENTIFIER, NOTHING_FOUND, TRANSPORT
        """
        self._check_enabled()
        tmdb_id = self._to_tmdb_id(self._identity.resolve_show(options), options)

        cache_key = ResultCache.make_key(TMDB, f"tv/{tmdb_id}/episodes", options.language)
        cached = self._cache.get(cache_key)
        if cached:
            return cached

        show = self._fetch_show(tmdb_id, options, full=False)
        episodes = []
        for season in show.get("seasons") or []:
            season_number = parse_optional_int(season.get("season_number"), "season_number")
            if season_number is None:
                continue
            try:
                data = self._get_executor().get_json(
                    f"/tv/{tmdb_id}/season/{season_number}",
                    cancel=options.cancel,
                    params={"language": options.language},
                )
            except ScrapeError as e:
                if e.is_not_found:
                    raise nothing_found(
                        f"season {season_number} of show {tmdb_id} not found", provider_id=TMDB
                    ) from e
                raise
            episodes.extend(self._parse_episode(raw) for raw in data.get("episodes") or [])

        if episodes:
            self._cache.put(cache_key, episodes)
        logger.debug("tmdb tv episode list", id=tmdb_id, episodes=len(episodes))
        return episodes

    def get_episode(self, options: ResolutionOptions) -> MetadataRecord:
        self._identity.resolve_show(options)
        self._identity.check_episode_request(options)
        episodes = self.get_episode_list(options.for_show())
        return self._identity.find_episode(options, episodes)

    def _parse_episode(self, raw: dict[str, Any]) -> MetadataRecord:
        episode = MetadataRecord(provider_id=TMDB, media_type=MediaType.EPISODE)
        episode.set_id(TMDB, raw.get("id"))
        self._normalizer.apply(
            episode,
            RawEpisodeNumbering(
                aired_season=parse_optional_int(raw.get("season_number"), "season_number"),
                aired_episode=parse_optional_int(raw.get("episode_number"), "episode_number"),
            ),
        )
        episode.title = clean_title(raw.get("name"))
        episode.plot = (raw.get("overview") or "").strip()
        episode.runtime = parse_int(raw.get("runtime"), field="runtime")
        episode.release_date = parse_date(raw.get("air_date"))
        episode.year = parse_year(raw.get("air_date"))

        vote_count = parse_int(raw.get("vote_count"), field="vote_count")
        if vote_count > 0:
            episode.add_rating(
                Rating(TMDB, parse_float(raw.get("vote_average"), field="vote_average"), vote_count)
            )

        still_path = raw.get("still_path")
        if still_path:
            episode.artwork.append(Artwork(ArtworkType.THUMB, f"{TMDB_IMAGE_BASE_URL}{still_path}"))
        return episode

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None
            self._executor = None
