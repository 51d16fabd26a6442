"""
Client TVDB API v3 pour les series TV.

Implemente les capacites recherche, metadonnees, liste d'episodes, notes
et IDs depuis TVDB. Gere l'authentification JWT (rafraichie sur 401),
le cache des listes d'episodes et le repli de langue.

Note: Utilise l'API v3 (legacy) car plus compatible avec les cles existantes.
Reference API: https://api.thetvdb.com/swagger

Accept-Language: les enregistrements sont retournes avec le titre et le
synopsis dans la langue demandee s'ils existent, sinon avec des champs
vides (d'ou le repli de langue).
"""

import threading
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from loguru import logger

from src.adapters.api.cache import ResultCache
from src.adapters.api.rate_limiter import RateLimiter
from src.adapters.api.retry import RetryingHttpExecutor, request_with_retry
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
from src.core.errors import ScrapeError, feature_disabled, nothing_found, transport_error
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
from src.utils.constants import ENGLISH, IMDB, TVDB, ZAP2IT
from src.utils.helpers import (
    clean_title,
    clear_year_from_title,
    is_blank,
    is_valid_imdb_id,
    parse_date,
    parse_float,
    parse_int,
    parse_optional_int,
    parse_year,
)

EPISODES_PAGE_SIZE = 100


def _tvdb_error_body(response: httpx.Response) -> Optional[str]:
    data = response.json()
    if isinstance(data, dict):
        return data.get("Error")
    return None


def _split_names(values: Optional[list[str]]) -> list[str]:
    """TVDB v3 regroupe parfois plusieurs noms dans une entree: "A, B"."""
    names = []
    for value in values or []:
        for name in value.split(","):
            if name.strip():
                names.append(name.strip())
    return names


class TVDBClient(
    ISearchProvider, IMetadataProvider, IEpisodeListProvider, IRatingProvider, IIdProvider
):
    """
    Client TVDB pour les series TV.

    Utilise l'API TVDB v3 avec authentification JWT. Le token est obtenu
    automatiquement a la premiere requete, rafraichi avant expiration et
    sur reponse 401.

    Attributes:
        BASE_URL: URL de base de l'API TVDB v3
        ARTWORK_URL: Prefixe des images (posters, vignettes)
        SUPPORTED_GROUPS: Schemas de numerotation fournis par TVDB

    Example:
        client = TVDBClient(config, cache=ResultCache())
        episodes = client.get_episode_list(ResolutionOptions(ids={"tvdb": "81189"}))
        client.close()
    """

    BASE_URL = "https://api.thetvdb.com"
    ARTWORK_URL = "https://artworks.thetvdb.com/banners/"
    SUPPORTED_GROUPS = frozenset(
        {EpisodeGroup.AIRED, EpisodeGroup.DVD, EpisodeGroup.ABSOLUTE, EpisodeGroup.DISPLAY}
    )

    def __init__(
        self,
        config: ProviderConfig,
        cache: ResultCache,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialise le client TVDB.

        Args:
            config: Configuration du fournisseur (cle API, repli de langue)
            cache: Cache en memoire des listes d'episodes
            rate_limiter: Limiteur de debit propre a TVDB
            timeout: Timeout HTTP en secondes
        """
        self._config = config
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._timeout = timeout
        self._token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None
        self._token_lock = threading.Lock()
        self._client_lock = threading.Lock()
        self._client: Optional[httpx.Client] = None
        self._executor: Optional[RetryingHttpExecutor] = None
        self._identity = IdentityResolver(TVDB, supported=(IMDB,))
        self._fallback = LanguageFallbackResolver(config.title_fallback, config.fallback_language)
        self._normalizer = EpisodeNumberingNormalizer(self.SUPPORTED_GROUPS)
        self._scorer = SearchScorer()

    @property
    def provider_id(self) -> str:
        return TVDB

    def _check_enabled(self) -> None:
        if not self._config.enabled:
            raise feature_disabled(TVDB)

    def _get_executor(self) -> RetryingHttpExecutor:
        """
        Retourne l'executeur HTTP, cree le client s'il n'existe pas.

        Utilise un client unique pour beneficier du connection pooling.
        """
        self._check_enabled()
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    base_url=self.BASE_URL,
                    timeout=httpx.Timeout(self._timeout, connect=10.0),
                )
                self._executor = RetryingHttpExecutor(
                    self._client,
                    TVDB,
                    rate_limiter=self._rate_limiter,
                    auth=self._auth_headers,
                    refresh=self._refresh_token,
                    error_body=_tvdb_error_body,
                )
            return self._executor

    def _ensure_token(self, force: bool = False) -> str:
        """
        S'assure qu'un token JWT valide est disponible.

        Obtient un nouveau token si:
        - Aucun token n'existe
        - Le token est expire ou proche de l'expiration
        - force est vrai (token rejete par l'API)

        Returns:
            Token JWT valide
        """
        with self._token_lock:
            if (
                not force
                and self._token
                and self._token_expiry
                and datetime.now() < self._token_expiry
            ):
                return self._token

            try:
                response = request_with_retry(
                    self._client,
                    "POST",
                    "/login",
                    json={"apikey": self._config.api_key},
                )
            except httpx.HTTPError as e:
                raise transport_error(f"login failed: {e}", provider_id=TVDB) from e
            if not response.is_success:
                raise transport_error(
                    f"login failed: {response.reason_phrase}",
                    status_code=response.status_code,
                    provider_id=TVDB,
                )

            # API v3: token directement dans la reponse (pas dans "data")
            data = self._executor.decode_json(response)
            token = data.get("token") if isinstance(data, dict) else None
            if not token or not isinstance(token, str):
                raise transport_error(
                    "login failed: no token in response",
                    status_code=response.status_code,
                    provider_id=TVDB,
                )
            self._token = token
            # Token valide ~1 semaine, rafraichir 1 jour avant expiration
            self._token_expiry = datetime.now() + timedelta(days=6)
            logger.debug("tvdb token obtained")
            return self._token

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._ensure_token()}"}

    def _refresh_token(self) -> None:
        self._ensure_token(force=True)

    def _get(self, url: str, language: str, options: ResolutionOptions, **kwargs) -> Any:
        return self._get_executor().get_json(
            url, cancel=options.cancel, headers={"Accept-Language": language}, **kwargs
        )

    def _artwork_url(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        # l'API retourne le chemin avec ou sans /banners/
        return self.ARTWORK_URL + path.lstrip("/").replace("banners/", "", 1)

    # ---- search -------------------------------------------------------

    def search(self, options: ResolutionOptions) -> list[SearchCandidate]:
        """
        Recherche des series TV par titre, ID IMDb ou ID TVDB.

        - ID TVDB present: recuperation directe (score 1.0)
        - Requete ou ID IMDb valide: /search/series, avec repli de langue
          sur 404 (langue demandee, langue de repli, anglais)

        Une requete vide ne declenche aucun appel reseau.
        """
        if is_blank(options.query):
            return []
        self._check_enabled()
        query = options.query.strip()

        tvdb_id = options.id_for(TVDB)
        if tvdb_id and tvdb_id != "0":
            try:
                show = self._fetch_series(tvdb_id, options.language, options)
            except ScrapeError as e:
                if not e.is_not_found:
                    raise
            else:
                candidate = self._to_candidate(show)
                candidate.score = 1.0
                return [candidate]

        imdb_id = options.id_for(IMDB)
        params: dict[str, str]
        if is_valid_imdb_id(query):
            params = {"imdbId": query}
        elif is_valid_imdb_id(imdb_id):
            params = {"imdbId": imdb_id}
        else:
            params = {"name": query}

        series = self._search_series(params, options)
        candidates = [
            self._scorer.score_candidate(query, self._to_candidate(show), show.get("aliases") or [])
            for show in series
        ]
        if "imdbId" in params:
            for candidate in candidates:
                candidate.score = 1.0
        logger.debug("tvdb search", query=query, results=len(candidates))
        return self._scorer.rank(candidates)

    def _search_series(self, params: dict[str, str], options: ResolutionOptions) -> list[dict]:
        """
        /search/series dans la langue demandee, puis repli sur 404.

        TVDB retourne 404 quand aucune serie ne correspond dans la langue.
        """
        languages = [options.language]
        fallback = self._config.fallback_language
        if fallback and fallback != options.language:
            languages.append(fallback)
        if fallback != ENGLISH and options.language != ENGLISH:
            languages.append(ENGLISH)

        for language in languages:
            try:
                data = self._get("/search/series", language, options, params=params)
            except ScrapeError as e:
                if not e.is_not_found:
                    raise
                logger.debug("tvdb search not found", language=language)
                continue
            return data.get("data") or []
        return []

    def _to_candidate(self, show: dict[str, Any]) -> SearchCandidate:
        year = parse_year(show.get("firstAired"))
        title = clean_title(show.get("seriesName"))
        return SearchCandidate(
            id=str(show["id"]),
            title=clear_year_from_title(title, year),
            year=year,
            poster_url=self._artwork_url(show.get("poster")),
            provider_id=TVDB,
            overview=show.get("overview") or "",
            ids={TVDB: str(show["id"])},
        )

    # ---- show metadata ------------------------------------------------

    def get_metadata(self, options: ResolutionOptions) -> MetadataRecord:
        """
        Recupere les details complets d'une serie, ou d'un episode si la
        requete porte une graine (serie parente) ou des numeros d'episode.

        Raises:
            ScrapeError: MISSING_IDENTIFIER, NOTHING_FOUND, TRANSPORT, FEATURE_DISABLED
        """
        if options.media_type is MediaType.EPISODE:
            return self.get_episode(options)

        self._check_enabled()
        show_id = self._to_tvdb_id(self._identity.resolve(options), options)

        show = self._fetch_series(show_id, options.language, options)
        record = self._parse_series(show)
        self._fallback.resolve(
            record,
            options.language,
            lambda language: self._parse_series(self._fetch_series(show_id, language, options)),
        )
        record.cast.extend(self._fetch_actors(show_id, options))
        logger.debug("tvdb metadata", id=show_id, title=record.title)
        return record

    def get_ratings(self, options: ResolutionOptions) -> list[Rating]:
        return list(self.get_metadata(options).ratings.values())

    def get_media_ids(self, options: ResolutionOptions) -> dict[str, str]:
        return dict(self.get_metadata(options).ids)

    def _to_tvdb_id(self, resolved: ResolvedId, options: ResolutionOptions) -> str:
        """Convertit un ID IMDb en ID TVDB via /search/series?imdbId=."""
        if resolved.namespace == TVDB:
            return resolved.value
        series = self._search_series({"imdbId": resolved.value}, options)
        if not series:
            raise nothing_found(f"no show for imdb id {resolved.value}", provider_id=TVDB)
        return str(series[0]["id"])

    def _fetch_series(self, show_id: str, language: str, options: ResolutionOptions) -> dict:
        try:
            data = self._get(f"/series/{show_id}", language, options)
        except ScrapeError as e:
            if e.is_not_found:
                raise nothing_found(f"show {show_id} not found", provider_id=TVDB) from e
            raise
        show = data.get("data")
        if not show:
            raise nothing_found(f"show {show_id} not found", provider_id=TVDB)
        return show

    def _parse_series(self, show: dict[str, Any]) -> MetadataRecord:
        record = MetadataRecord(provider_id=TVDB, media_type=MediaType.TV_SHOW)
        record.set_id(TVDB, show.get("id"))
        if is_valid_imdb_id(show.get("imdbId")):
            record.set_id(IMDB, show.get("imdbId"))
        record.set_id(ZAP2IT, show.get("zap2itId"))

        record.plot = (show.get("overview") or "").strip()
        record.runtime = parse_int(show.get("runtime"), field="runtime")
        record.release_date = parse_date(show.get("firstAired"))
        record.year = parse_year(show.get("firstAired"))
        title = clean_title(show.get("seriesName"))
        if record.year and str(record.year) in title:
            logger.debug("weird tvdb entry, removing year from title", year=record.year)
            title = clear_year_from_title(title, record.year)
        record.title = title

        if show.get("siteRating") is not None:
            record.add_rating(
                Rating(
                    TVDB,
                    parse_float(show.get("siteRating"), field="siteRating"),
                    parse_int(show.get("siteRatingCount"), field="siteRatingCount"),
                )
            )

        record.status = show.get("status") or ""
        record.add_production_company(show.get("network"))
        record.add_certification(show.get("rating"))
        record.genres = {g for g in show.get("genre") or [] if g}
        record.episode_groups = set(self.SUPPORTED_GROUPS)

        for key, artwork_type in (
            ("poster", ArtworkType.POSTER),
            ("fanart", ArtworkType.BACKGROUND),
            ("banner", ArtworkType.BANNER),
        ):
            url = self._artwork_url(show.get(key))
            if url:
                record.artwork.append(Artwork(artwork_type, url))
        return record

    def _fetch_actors(self, show_id: str, options: ResolutionOptions) -> list[Person]:
        """Acteurs de la serie; un echec n'invalide pas les metadonnees."""
        try:
            data = self._get(f"/series/{show_id}/actors", options.language, options)
        except ScrapeError as e:
            logger.error("failed to get actors", id=show_id, error=str(e))
            return []

        actors = sorted(data.get("data") or [], key=lambda a: parse_int(a.get("sortOrder")))
        cast = []
        for actor in actors:
            if not actor.get("name"):
                continue
            person = Person(
                PersonType.ACTOR,
                actor["name"],
                role=actor.get("role") or "",
                thumb_url=self._artwork_url(actor.get("image")),
            )
            if actor.get("id"):
                person.ids[TVDB] = str(actor["id"])
            cast.append(person)
        return cast

    # ---- episodes -----------------------------------------------------

    def get_episode_list(self, options: ResolutionOptions) -> list[MetadataRecord]:
        """
        Liste complete des episodes d'une serie (100 par page).

        La liste est mise en cache par serie et par langue. Un echec sur
        la premiere page est une erreur; sur une page suivante, la liste
        deja obtenue est conservee (le nombre d'episodes peut etre un
        multiple exact de la taille de page).
        """
        self._check_enabled()
        show_id = self._to_tvdb_id(self._identity.resolve_show(options), options)

        cache_key = ResultCache.make_key(TVDB, show_id, options.language)
        cached = self._cache.get(cache_key)
        if cached:
            return cached

        raw_episodes: list[dict] = []
        page = 1
        while True:
            try:
                data = self._get(
                    f"/series/{show_id}/episodes", options.language, options, params={"page": page}
                )
            except ScrapeError as e:
                if page == 1:
                    if e.is_not_found:
                        raise nothing_found(f"show {show_id} not found", provider_id=TVDB) from e
                    raise
                logger.debug("tvdb episode pagination stopped", page=page, error=str(e))
                break

            page_data = data.get("data") or []
            raw_episodes.extend(page_data)
            if len(page_data) < EPISODES_PAGE_SIZE:
                break
            page += 1

        episodes = []
        for raw in raw_episodes:
            episode = self._parse_episode(raw)
            self._fallback.resolve(
                episode,
                options.language,
                lambda language, episode_id=raw.get("id"): self._fetch_episode(
                    episode_id, language, options
                ),
            )
            episodes.append(episode)

        if episodes:
            self._cache.put(cache_key, episodes)
        logger.debug("tvdb episode list", id=show_id, episodes=len(episodes), pages=page)
        return episodes

    def get_episode(self, options: ResolutionOptions) -> MetadataRecord:
        """
        Recupere un episode via la liste complete (mise en cache).

        Raises:
            ScrapeError: MISSING_IDENTIFIER sans numeros/ID/date, NOTHING_FOUND
        """
        self._check_enabled()
        self._identity.resolve_show(options)
        self._identity.check_episode_request(options)
        episodes = self.get_episode_list(options.for_show())
        return self._identity.find_episode(options, episodes)

    def _fetch_episode(
        self, episode_id: Any, language: str, options: ResolutionOptions
    ) -> Optional[MetadataRecord]:
        if not episode_id:
            return None
        data = self._get(f"/episodes/{episode_id}", language, options)
        if not data.get("data"):
            return None
        return self._parse_episode(data["data"])

    def _parse_episode(self, ep: dict[str, Any]) -> MetadataRecord:
        episode = MetadataRecord(provider_id=TVDB, media_type=MediaType.EPISODE)
        episode.set_id(TVDB, ep.get("id"))
        if is_valid_imdb_id(ep.get("imdbId")):
            episode.set_id(IMDB, ep.get("imdbId"))

        raw = RawEpisodeNumbering(
            aired_season=parse_optional_int(ep.get("airedSeason"), "airedSeason"),
            aired_episode=parse_optional_int(ep.get("airedEpisodeNumber"), "airedEpisodeNumber"),
            dvd_season=parse_optional_int(ep.get("dvdSeason"), "dvdSeason"),
            dvd_episode=parse_optional_int(ep.get("dvdEpisodeNumber"), "dvdEpisodeNumber"),
            absolute_number=parse_optional_int(ep.get("absoluteNumber"), "absoluteNumber"),
            airs_before_season=parse_optional_int(ep.get("airsBeforeSeason"), "airsBeforeSeason"),
            airs_before_episode=parse_optional_int(
                ep.get("airsBeforeEpisode"), "airsBeforeEpisode"
            ),
            airs_after_season=parse_optional_int(ep.get("airsAfterSeason"), "airsAfterSeason"),
        )
        self._normalizer.apply(episode, raw)

        episode.title = clean_title(ep.get("episodeName"))
        episode.plot = (ep.get("overview") or "").strip()
        episode.release_date = parse_date(ep.get("firstAired"))
        episode.year = parse_year(ep.get("firstAired"))

        if ep.get("siteRating") is not None:
            episode.add_rating(
                Rating(
                    TVDB,
                    parse_float(ep.get("siteRating"), field="siteRating"),
                    parse_int(ep.get("siteRatingCount"), field="siteRatingCount"),
                )
            )

        for name in _split_names(ep.get("directors")):
            episode.cast.append(Person(PersonType.DIRECTOR, name))
        for name in _split_names(ep.get("writers")):
            episode.cast.append(Person(PersonType.WRITER, name))
        for name in _split_names(ep.get("guestStars")):
            episode.cast.append(Person(PersonType.ACTOR, name))

        thumb = self._artwork_url(ep.get("filename"))
        if thumb:
            episode.artwork.append(
                Artwork(
                    ArtworkType.THUMB,
                    thumb,
                    width=parse_int(ep.get("thumbWidth"), field="thumbWidth"),
                    height=parse_int(ep.get("thumbHeight"), field="thumbHeight"),
                )
            )
        return episode

    def close(self) -> None:
        """Ferme le client HTTP et libere les ressources."""
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None
            self._executor = None
