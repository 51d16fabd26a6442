"""
Client TMDB pour la recherche et recuperation de metadonnees films.

Implemente les capacites recherche, metadonnees, notes et IDs pour
TMDB (The Movie Database). Utilise le cache en memoire, le rate limiting
et l'executeur avec retry du fournisseur.

Usage:
    client = TMDBClient(config, cache=ResultCache())
    candidates = client.search(ResolutionOptions(query="Avatar"))
    record = client.get_metadata(ResolutionOptions(ids={"tmdb": "19995"}))
    client.close()
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
    MediaType,
    MetadataRecord,
    Person,
    PersonType,
    Rating,
    SearchCandidate,
)
from src.core.errors import ScrapeError, feature_disabled, nothing_found
from src.core.ports.providers import IIdProvider, IMetadataProvider, IRatingProvider, ISearchProvider
from src.core.value_objects.options import ProviderConfig, ResolutionOptions
from src.services.identity import IdentityResolver, ResolvedId
from src.services.language_fallback import LanguageFallbackResolver
from src.services.matcher import SearchScorer
from src.utils.constants import IMDB, TMDB, TVDB
from src.utils.helpers import clean_title, is_blank, parse_date, parse_float, parse_int, parse_year

_FIND_SOURCES = {IMDB: "imdb_id", TVDB: "tvdb_id"}
_CREW_TYPES = {
    "Director": PersonType.DIRECTOR,
    "Screenplay": PersonType.WRITER,
    "Writer": PersonType.WRITER,
    "Producer": PersonType.PRODUCER,
}


TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
TMDB_BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/original"


def tmdb_error_body(response: httpx.Response) -> Optional[str]:
    data = response.json()
    if isinstance(data, dict):
        return data.get("status_message")
    return None


def create_tmdb_http_client(api_key: str, timeout: float) -> httpx.Client:
    """
    Client httpx authentifie pour l'API TMDB v3.

    Supporte les deux modes d'authentification TMDB:
    - API Key v3 (32 caracteres hex) : passe en parametre api_key
    - Read Access Token v4 (long JWT) : passe en header Bearer
    """
    headers = {"Accept": "application/json"}
    params = {}
    if len(api_key) > 40:
        headers["Authorization"] = f"Bearer {api_key}"
    else:
        params["api_key"] = api_key
    return httpx.Client(
        base_url=TMDB_BASE_URL, headers=headers, params=params, timeout=timeout
    )


def parse_tmdb_credits(record: MetadataRecord, credits_data: dict[str, Any]) -> None:
    """Acteurs (avec role et portrait) puis realisateurs, scenaristes, producteurs."""
    for actor in credits_data.get("cast", []):
        if not actor.get("name"):
            continue
        profile_path = actor.get("profile_path")
        person = Person(
            PersonType.ACTOR,
            actor["name"],
            role=actor.get("character") or "",
            thumb_url=f"{TMDB_IMAGE_BASE_URL}{profile_path}" if profile_path else None,
        )
        if actor.get("id"):
            person.ids[TMDB] = str(actor["id"])
        record.cast.append(person)

    for crew_member in credits_data.get("crew", []):
        person_type = _CREW_TYPES.get(crew_member.get("job", ""))
        if person_type is None or not crew_member.get("name"):
            continue
        record.cast.append(
            Person(person_type, crew_member["name"], role=crew_member.get("job", ""))
        )


class TMDBClient(ISearchProvider, IMetadataProvider, IRatingProvider, IIdProvider):
    """
    Client API TMDB pour les metadonnees de films.

    - Recherche de films par titre (scores par similarite)
    - Details complets (credits, IDs externes, dates de sortie par pays)
    - Conversion IMDb/TVDB -> TMDB via /find
    - Repli de langue sur titre et synopsis

    Les series sont servies par TMDBTvClient (meme API, meme cle).
    """

    def __init__(
        self,
        config: ProviderConfig,
        cache: ResultCache,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialise le client TMDB.

        Args:
            config: Configuration du fournisseur (cle API, repli de langue)
            cache: Cache en memoire partage
            rate_limiter: Limiteur de debit propre a TMDB
            timeout: Timeout HTTP en secondes
        """
        self._config = config
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._timeout = timeout
        self._client: Optional[httpx.Client] = None
        self._executor: Optional[RetryingHttpExecutor] = None
        self._client_lock = threading.Lock()
        self._identity = IdentityResolver(TMDB, supported=(IMDB, TVDB))
        self._fallback = LanguageFallbackResolver(config.title_fallback, config.fallback_language)
        self._scorer = SearchScorer()

    @property
    def provider_id(self) -> str:
        return TMDB

    def _check_enabled(self) -> None:
        if not self._config.enabled:
            raise feature_disabled(TMDB)

    def _get_executor(self) -> RetryingHttpExecutor:
        """Retourne l'executeur HTTP, cree le client si necessaire (lazy init)."""
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

    def search(self, options: ResolutionOptions) -> list[SearchCandidate]:
        """
        Recherche des films par titre.

        Une requete vide ne declenche aucun appel reseau.

        Returns:
            Candidats classes par score decroissant (tous les resultats)
        """
        if is_blank(options.query):
            return []
        executor = self._get_executor()
        query = options.query.strip()

        data = executor.get_json(
            "/search/movie",
            cancel=options.cancel,
            params={"query": query, "language": options.language, "include_adult": "false"},
        )

        candidates = []
        for item in data.get("results", []):
            poster_path = item.get("poster_path")
            candidate = SearchCandidate(
                id=str(item["id"]),
                title=clean_title(item.get("title")),
                original_title=clean_title(item.get("original_title")),
                year=parse_year(item.get("release_date")),
                poster_url=f"{TMDB_IMAGE_BASE_URL}{poster_path}" if poster_path else None,
                provider_id=TMDB,
                overview=item.get("overview") or "",
                ids={TMDB: str(item["id"])},
            )
            candidates.append(self._scorer.score_candidate(query, candidate))

        logger.debug("tmdb search", query=query, results=len(candidates))
        return self._scorer.rank(candidates)

    def get_metadata(self, options: ResolutionOptions) -> MetadataRecord:
        """
        Recupere les details complets d'un film.

        Raises:
            ScrapeError: MISSING_IDENTIFIER, NOTHING_FOUND, TRANSPORT, FEATURE_DISABLED
        """
        self._check_enabled()
        resolved = self._identity.resolve(options)
        tmdb_id = self._to_tmdb_id(resolved, options)

        data = self._fetch_movie(tmdb_id, options, full=True)
        record = self._parse_movie(data, options)

        def fetch(language: str) -> Optional[MetadataRecord]:
            translated = self._fetch_movie(tmdb_id, options.with_language(language), full=False)
            return self._parse_movie(translated, options)

        self._fallback.resolve(record, options.language, fetch)
        logger.debug("tmdb metadata", id=tmdb_id, title=record.title)
        return record

    def get_ratings(self, options: ResolutionOptions) -> list[Rating]:
        return list(self.get_metadata(options).ratings.values())

    def get_media_ids(self, options: ResolutionOptions) -> dict[str, str]:
        return dict(self.get_metadata(options).ids)

    def _to_tmdb_id(self, resolved: ResolvedId, options: ResolutionOptions) -> str:
        """
        Convertit un ID externe en ID TMDB via /find/{external_id}.

        Raises:
            ScrapeError: NOTHING_FOUND si TMDB ne connait pas cet ID
        """
        if resolved.namespace == TMDB:
            return resolved.value

        data = self._get_executor().get_json(
            f"/find/{resolved.value}",
            cancel=options.cancel,
            params={"external_source": _FIND_SOURCES[resolved.namespace]},
        )
        movie_results = data.get("movie_results", [])
        if not movie_results:
            raise nothing_found(
                f"no movie for {resolved.namespace} id {resolved.value}", provider_id=TMDB
            )
        return str(movie_results[0]["id"])

    def _fetch_movie(self, tmdb_id: str, options: ResolutionOptions, full: bool) -> dict[str, Any]:
        """
        Recupere le document /movie/{id} (cache par ID et langue).

        Un 404 devient NOTHING_FOUND.
        """
        entity = f"movie/{tmdb_id}" if full else f"movie/{tmdb_id}/translation"
        cache_key = ResultCache.make_key(TMDB, entity, options.language)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        params = {"language": options.language}
        if full:
            params["append_to_response"] = "credits,external_ids,release_dates"
        try:
            data = self._get_executor().get_json(
                f"/movie/{tmdb_id}", cancel=options.cancel, params=params
            )
        except ScrapeError as e:
            if e.is_not_found:
                raise nothing_found(f"movie {tmdb_id} not found", provider_id=TMDB) from e
            raise

        self._cache.put(cache_key, data)
        return data

    def _parse_movie(self, data: dict[str, Any], options: ResolutionOptions) -> MetadataRecord:
        record = MetadataRecord(provider_id=TMDB, media_type=MediaType.MOVIE)
        record.set_id(TMDB, data.get("id"))
        record.title = clean_title(data.get("title"))
        record.original_title = clean_title(data.get("original_title"))
        record.original_language = data.get("original_language") or ""
        record.plot = (data.get("overview") or "").strip()
        record.tagline = (data.get("tagline") or "").strip()
        record.runtime = parse_int(data.get("runtime"), field="runtime")
        record.status = data.get("status") or ""
        record.release_date = parse_date(data.get("release_date"))
        record.year = parse_year(data.get("release_date"))

        record.set_id(IMDB, data.get("imdb_id"))
        external_ids = data.get("external_ids") or {}
        record.set_id(IMDB, external_ids.get("imdb_id"))
        record.set_id("wikidata", external_ids.get("wikidata_id"))

        vote_count = parse_int(data.get("vote_count"), field="vote_count")
        if vote_count > 0:
            record.add_rating(
                Rating(TMDB, parse_float(data.get("vote_average"), field="vote_average"), vote_count)
            )

        record.genres = {g["name"] for g in data.get("genres", []) if g.get("name")}
        for company in data.get("production_companies", []):
            record.add_production_company(company.get("name"))
        record.countries = [
            c["iso_3166_1"] for c in data.get("production_countries", []) if c.get("iso_3166_1")
        ]

        self._parse_release_dates(record, data.get("release_dates") or {}, options)
        parse_tmdb_credits(record, data.get("credits") or {})

        poster_path = data.get("poster_path")
        if poster_path:
            record.artwork.append(
                Artwork(ArtworkType.POSTER, f"{TMDB_IMAGE_BASE_URL}{poster_path}")
            )
        backdrop_path = data.get("backdrop_path")
        if backdrop_path:
            record.artwork.append(
                Artwork(ArtworkType.BACKGROUND, f"{TMDB_BACKDROP_BASE_URL}{backdrop_path}")
            )
        return record

    @staticmethod
    def _parse_release_dates(
        record: MetadataRecord, release_dates: dict[str, Any], options: ResolutionOptions
    ) -> None:
        """Classification du pays de certification, date de sortie du pays demande."""
        for country in release_dates.get("results", []):
            code = country.get("iso_3166_1")
            entries = country.get("release_dates", [])
            if code == options.certification_country:
                for entry in entries:
                    record.add_certification((entry.get("certification") or "").strip())
            if code == options.release_date_country:
                dates = [parse_date(e.get("release_date")) for e in entries]
                dates = [d for d in dates if d is not None]
                if dates:
                    record.release_date = min(dates)

    def close(self) -> None:
        """
        Ferme le client HTTP.

        Doit etre appele a la fin de l'utilisation pour liberer
        les ressources reseau.
        """
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None
            self._executor = None
