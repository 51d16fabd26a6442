"""
Client TVmaze pour les series TV.

API publique sans cle (https://www.tvmaze.com/api). TVmaze ne gere pas
de traduction: pas de repli de langue, numerotation AIRED uniquement.
Les synopsis sont des fragments HTML reduits a leur texte.

Limite amont: 20 appels par fenetre de 10 secondes par IP.
"""

import threading
from typing import Any, Optional

import httpx
from loguru import logger

from src.adapters.api.cache import ResultCache
from src.adapters.api.rate_limiter import RateLimiter
from src.adapters.api.retry import RetryingHttpExecutor
from src.core.entities.metadata import (
    Artwork,
    ArtworkType,
    EpisodeGroup,
    MediaType,
    MetadataRecord,
    Person,
    PersonType,
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
from src.services.matcher import SearchScorer
from src.utils.constants import IMDB, TVDB, TVMAZE, TVRAGE
from src.utils.helpers import (
    clean_title,
    is_blank,
    parse_date,
    parse_float,
    parse_int,
    parse_optional_int,
    parse_year,
    strip_html,
)

# namespace -> parametre de /lookup/shows
_LOOKUP_PARAMS = {IMDB: "imdb", TVDB: "thetvdb", TVRAGE: "tvrage"}
_IMAGE_TYPES = {
    "poster": ArtworkType.POSTER,
    "background": ArtworkType.BACKGROUND,
    "banner": ArtworkType.BANNER,
}


class TVMazeClient(
    ISearchProvider, IMetadataProvider, IEpisodeListProvider, IRatingProvider, IIdProvider
):
    """
    Client TVmaze.

    Attributes:
        BASE_URL: URL de base de l'API TVmaze
        SUPPORTED_GROUPS: AIRED uniquement
    """

    BASE_URL = "https://api.tvmaze.com"
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
        self._identity = IdentityResolver(TVMAZE, supported=(IMDB, TVDB, TVRAGE))
        self._normalizer = EpisodeNumberingNormalizer(self.SUPPORTED_GROUPS)
        self._scorer = SearchScorer()

    @property
    def provider_id(self) -> str:
        return TVMAZE

    def _get_executor(self) -> RetryingHttpExecutor:
        """Client paresseux; /lookup repond par une redirection vers /shows/{id}."""
        if not self._config.enabled:
            raise feature_disabled(TVMAZE)
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    base_url=self.BASE_URL,
                    headers={"Accept": "application/json"},
                    timeout=self._timeout,
                    follow_redirects=True,
                )
                self._executor = RetryingHttpExecutor(
                    self._client, TVMAZE, rate_limiter=self._rate_limiter
                )
            return self._executor

    def search(self, options: ResolutionOptions) -> list[SearchCandidate]:
        """
        Recherche des series par titre.

        Un candidat dont l'ID IMDb (ou TVmaze) correspond a celui de la
        requete est un match parfait (score 1.0).
        """
        if is_blank(options.query):
            return []
        query = options.query.strip()

        results = self._get_executor().get_json(
            "/search/shows", cancel=options.cancel, params={"q": query}
        )

        wanted_imdb = options.id_for(IMDB)
        wanted_native = options.id_for(TVMAZE)
        candidates = []
        for item in results:
            show = item.get("show") or {}
            if not show.get("id"):
                continue
            candidate = self._to_candidate(show)
            if (wanted_imdb and candidate.ids.get(IMDB) == wanted_imdb) or (
                wanted_native and candidate.id == wanted_native
            ):
                logger.debug("perfect match by id", id=candidate.id)
                candidate.score = 1.0
            else:
                candidate = self._scorer.score_candidate(query, candidate)
            candidates.append(candidate)

        logger.debug("tvmaze search", query=query, results=len(candidates))
        return self._scorer.rank(candidates)

    def _to_candidate(self, show: dict[str, Any]) -> SearchCandidate:
        image = show.get("image") or {}
        candidate = SearchCandidate(
            id=str(show["id"]),
            title=clean_title(show.get("name")),
            year=parse_year(show.get("premiered")),
            poster_url=image.get("original"),
            provider_id=TVMAZE,
            overview=strip_html(show.get("summary")),
        )
        self._collect_ids(candidate.ids, show)
        return candidate

    @staticmethod
    def _collect_ids(ids: dict[str, str], show: dict[str, Any]) -> None:
        ids[TVMAZE] = str(show["id"])
        externals = show.get("externals") or {}
        for namespace, key in ((IMDB, "imdb"), (TVDB, "thetvdb"), (TVRAGE, "tvrage")):
            value = externals.get(key)
            if value:
                ids[namespace] = str(value)

    def get_metadata(self, options: ResolutionOptions) -> MetadataRecord:
        """
        Details d'une serie avec son casting et ses images.

        Raises:
            ScrapeError: MISSING_IDENTIFIER, NOTHING_FOUND, TRANSPORT
        """
        if options.media_type is MediaType.EPISODE:
            return self.get_episode(options)

        show_id = self._to_tvmaze_id(self._identity.resolve(options), options)
        try:
            show = self._get_executor().get_json(
                f"/shows/{show_id}", cancel=options.cancel, params={"embed": "cast"}
            )
        except ScrapeError as e:
            if e.is_not_found:
                raise nothing_found(f"show {show_id} not found", provider_id=TVMAZE) from e
            raise

        record = self._parse_show(show)
        record.artwork.extend(self._fetch_images(show_id, options))
        logger.debug("tvmaze metadata", id=show_id, title=record.title)
        return record

    def get_ratings(self, options: ResolutionOptions) -> list[Rating]:
        return list(self.get_metadata(options).ratings.values())

    def get_media_ids(self, options: ResolutionOptions) -> dict[str, str]:
        return dict(self.get_metadata(options).ids)

    def _to_tvmaze_id(self, resolved: ResolvedId, options: ResolutionOptions) -> str:
        """Convertit un ID externe via /lookup/shows (IMDb, TVDB, TVRage)."""
        if resolved.namespace == TVMAZE:
            return resolved.value
        param = _LOOKUP_PARAMS[resolved.namespace]
        try:
            show = self._get_executor().get_json(
                "/lookup/shows", cancel=options.cancel, params={param: resolved.value}
            )
        except ScrapeError as e:
            if e.is_not_found:
                raise nothing_found(
                    f"no show for {resolved.namespace} id {resolved.value}", provider_id=TVMAZE
                ) from e
            raise
        return str(show["id"])

    def _parse_show(self, show: dict[str, Any]) -> MetadataRecord:
        record = MetadataRecord(provider_id=TVMAZE, media_type=MediaType.TV_SHOW)
        self._collect_ids(record.ids, show)
        record.title = clean_title(show.get("name"))
        record.plot = strip_html(show.get("summary"))
        record.original_language = show.get("language") or ""
        record.release_date = parse_date(show.get("premiered"))
        record.year = parse_year(show.get("premiered"))
        record.runtime = parse_int(show.get("runtime") or show.get("averageRuntime"), field="runtime")
        record.status = show.get("status") or ""
        record.genres = {g for g in show.get("genres") or [] if g}
        record.episode_groups = set(self.SUPPORTED_GROUPS)

        network = show.get("network") or show.get("webChannel") or {}
        record.add_production_company(network.get("name"))
        country = network.get("country") or {}
        if country.get("code"):
            record.countries.append(country["code"])

        average = (show.get("rating") or {}).get("average")
        if average is not None:
            record.add_rating(Rating(TVMAZE, parse_float(average, field="rating")))

        for entry in (show.get("_embedded") or {}).get("cast", []):
            person_data = entry.get("person") or {}
            if not person_data.get("name"):
                continue
            image = person_data.get("image") or {}
            person = Person(
                PersonType.ACTOR,
                person_data["name"],
                role=(entry.get("character") or {}).get("name", ""),
                thumb_url=image.get("medium"),
            )
            if person_data.get("id"):
                person.ids[TVMAZE] = str(person_data["id"])
            record.cast.append(person)
        return record

    def _fetch_images(self, show_id: str, options: ResolutionOptions) -> list[Artwork]:
        """Images de la serie; un echec n'invalide pas les metadonnees."""
        try:
            images = self._get_executor().get_json(f"/shows/{show_id}/images", cancel=options.cancel)
        except ScrapeError as e:
            logger.warning("could not get images", id=show_id, error=str(e))
            return []

        artwork = []
        for image in images:
            artwork_type = _IMAGE_TYPES.get(image.get("type") or "")
            original = ((image.get("resolutions") or {}).get("original")) or {}
            if artwork_type is None or not original.get("url"):
                continue
            artwork.append(
                Artwork(
                    artwork_type,
                    original["url"],
                    width=parse_int(original.get("width"), field="width"),
                    height=parse_int(original.get("height"), field="height"),
                )
            )
        return artwork

    def get_episode_list(self, options: ResolutionOptions) -> list[MetadataRecord]:
        """Liste complete des episodes (un seul appel, mise en cache)."""
        show_id = self._to_tvmaze_id(self._identity.resolve_show(options), options)

        cache_key = ResultCache.make_key(TVMAZE, show_id, options.language)
        cached = self._cache.get(cache_key)
        if cached:
            return cached

        try:
            raw_episodes = self._get_executor().get_json(
                f"/shows/{show_id}/episodes", cancel=options.cancel
            )
        except ScrapeError as e:
            if e.is_not_found:
                raise nothing_found(f"show {show_id} not found", provider_id=TVMAZE) from e
            raise

        episodes = [self._parse_episode(raw) for raw in raw_episodes]
        if episodes:
            self._cache.put(cache_key, episodes)
        logger.debug("tvmaze episode list", id=show_id, episodes=len(episodes))
        return episodes

    def get_episode(self, options: ResolutionOptions) -> MetadataRecord:
        self._identity.resolve_show(options)
        self._identity.check_episode_request(options)
        episodes = self.get_episode_list(options.for_show())
        return self._identity.find_episode(options, episodes)

    def _parse_episode(self, raw: dict[str, Any]) -> MetadataRecord:
        episode = MetadataRecord(provider_id=TVMAZE, media_type=MediaType.EPISODE)
        episode.set_id(TVMAZE, raw.get("id"))
        self._normalizer.apply(
            episode,
            RawEpisodeNumbering(
                aired_season=parse_optional_int(raw.get("season"), "season"),
                aired_episode=parse_optional_int(raw.get("number"), "number"),
            ),
        )
        episode.title = clean_title(raw.get("name"))
        episode.plot = strip_html(raw.get("summary"))
        episode.runtime = parse_int(raw.get("runtime"), field="runtime")
        episode.release_date = parse_date(raw.get("airdate"))
        episode.year = parse_year(raw.get("airdate"))

        average = (raw.get("rating") or {}).get("average")
        if average is not None:
            episode.add_rating(Rating(TVMAZE, parse_float(average, field="rating")))

        image = raw.get("image") or {}
        if image.get("original"):
            episode.artwork.append(Artwork(ArtworkType.THUMB, image["original"]))
        return episode

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None
            self._executor = None
