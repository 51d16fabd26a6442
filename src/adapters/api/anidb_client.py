"""
Client AniDB pour les series d'animation.

- Recherche locale dans l'index des titres (telecharge au plus tous les
  deux jours, AniDB n'autorise qu'un telechargement par 24h)
- Document XML de l'anime via l'API HTTP, protege par le rate limiter
  (anti-flood AniDB: 1 requete toutes les 2 secondes par defaut)
- Episodes reguliers numerotes en ABSOLUTE (1, N), speciaux en AIRED (0, N)

Reference: https://wiki.anidb.net/w/HTTP_API_Definition
"""

import gzip
import threading
import time
import xml.etree.ElementTree as ET
from typing import Callable, Optional

import httpx
from loguru import logger

from src.adapters.api.anidb_parser import (
    AniDbEpisode,
    AniDbTitle,
    TITLE_MAIN,
    fill_anime_metadata,
    parse_anime_document,
    parse_episodes,
    parse_title_index,
)
from src.adapters.api.cache import ResultCache
from src.adapters.api.rate_limiter import RateLimiter
from src.adapters.api.retry import RetryingHttpExecutor
from src.core.entities.metadata import (
    EpisodeGroup,
    MediaType,
    MetadataRecord,
    Rating,
    SearchCandidate,
)
from src.core.errors import feature_disabled
from src.core.ports.providers import (
    IEpisodeListProvider,
    IIdProvider,
    IMetadataProvider,
    IRatingProvider,
    ISearchProvider,
)
from src.core.value_objects.options import ProviderConfig, ResolutionOptions
from src.services.episode_numbering import (
    EpisodeNumberingNormalizer,
    RawEpisodeNumbering,
    populated_groups,
)
from src.services.identity import IdentityResolver
from src.services.language_fallback import LanguageFallbackResolver
from src.services.matcher import SearchScorer
from src.utils.constants import (
    ANIDB,
    ANIDB_RATE_CAPACITY,
    ANIDB_RATE_WINDOW,
    SEARCH_SCORE_THRESHOLD,
)
from src.utils.helpers import is_blank

# romaji, titre de dernier recours des episodes
_ROMAJI = "x-jat"


class AniDbClient(
    ISearchProvider, IMetadataProvider, IEpisodeListProvider, IRatingProvider, IIdProvider
):
    """
    Client AniDB.

    Le credential (config.api_key) est le nom de client enregistre aupres
    d'AniDB: sans lui, toutes les operations echouent en FEATURE_DISABLED.

    Attributes:
        TITLES_URL: Index compresse des titres
        API_URL: API HTTP (documents XML)
        INDEX_MAX_AGE: Age maximal de l'index en memoire (secondes)
        SUPPORTED_GROUPS: ABSOLUTE (episodes reguliers) et AIRED (speciaux)
    """

    TITLES_URL = "http://anidb.net/api/anime-titles.dat.gz"
    API_URL = "http://api.anidb.net:9001/httpapi"
    INDEX_MAX_AGE = 2 * 24 * 3600
    SUPPORTED_GROUPS = frozenset({EpisodeGroup.ABSOLUTE, EpisodeGroup.AIRED})

    def __init__(
        self,
        config: ProviderConfig,
        cache: ResultCache,
        rate_limiter: Optional[RateLimiter] = None,
        client_version: int = 1,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialise le client AniDB.

        Args:
            config: Configuration (nom de client AniDB, tags, repli de langue)
            cache: Cache en memoire des documents anime
            rate_limiter: Limiteur anti-flood (defaut: 1 requete / 2 s)
            client_version: Version du client enregistre
            timeout: Timeout HTTP en secondes
            clock: Horloge pour l'age de l'index des titres
        """
        self._config = config
        self._cache = cache
        self._rate_limiter = rate_limiter or RateLimiter(
            ANIDB_RATE_CAPACITY, ANIDB_RATE_WINDOW, name=ANIDB
        )
        self._client_version = client_version
        self._timeout = timeout
        self._clock = clock
        self._client: Optional[httpx.Client] = None
        self._api: Optional[RetryingHttpExecutor] = None
        self._downloads: Optional[RetryingHttpExecutor] = None
        self._index: dict[int, list[AniDbTitle]] = {}
        self._index_loaded_at: Optional[float] = None
        self._index_lock = threading.Lock()
        self._client_lock = threading.Lock()
        self._identity = IdentityResolver(ANIDB, supported=())
        self._fallback = LanguageFallbackResolver(config.title_fallback, config.fallback_language)
        self._normalizer = EpisodeNumberingNormalizer(self.SUPPORTED_GROUPS)
        self._scorer = SearchScorer(threshold=SEARCH_SCORE_THRESHOLD)

    @property
    def provider_id(self) -> str:
        return ANIDB

    def _check_enabled(self) -> None:
        if not self._config.enabled:
            raise feature_disabled(ANIDB)

    def _get_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(timeout=self._timeout, follow_redirects=True)
                # l'index des titres n'est pas soumis a l'anti-flood de l'API
                self._downloads = RetryingHttpExecutor(self._client, ANIDB)
                self._api = RetryingHttpExecutor(
                    self._client, ANIDB, rate_limiter=self._rate_limiter
                )
            return self._client

    # ---- search -------------------------------------------------------

    def search(self, options: ResolutionOptions) -> list[SearchCandidate]:
        """
        Recherche dans l'index local des titres.

        Chaque anime est score sur toutes ses variantes de titre (max);
        les candidats sous le seuil de 0.75 sont ecartes. Le titre affiche
        est la variante la plus proche, le titre original le titre principal.
        """
        if is_blank(options.query):
            return []
        self._check_enabled()
        query = options.query.strip()
        index = self._load_index(options)

        candidates = []
        for aid, titles in index.items():
            best_title, best_score = "", 0.0
            for title in titles:
                score = self._scorer.score(query, [title.title])
                if score > best_score:
                    best_title, best_score = title.title, score
            if best_score < SEARCH_SCORE_THRESHOLD:
                continue
            original = next((t.title for t in titles if t.type == TITLE_MAIN), "")
            candidates.append(
                SearchCandidate(
                    id=str(aid),
                    title=best_title,
                    original_title=original,
                    score=best_score,
                    provider_id=ANIDB,
                    ids={ANIDB: str(aid)},
                )
            )

        logger.debug("anidb search", query=query, results=len(candidates))
        return self._scorer.rank(candidates)

    def _load_index(self, options: ResolutionOptions) -> dict[int, list[AniDbTitle]]:
        """Index des titres en memoire, recharge apres INDEX_MAX_AGE."""
        with self._index_lock:
            fresh = (
                self._index_loaded_at is not None
                and self._clock() - self._index_loaded_at < self.INDEX_MAX_AGE
            )
            if fresh:
                return self._index

            self._get_client()
            response = self._downloads.execute("GET", self.TITLES_URL, cancel=options.cancel)
            content = response.content
            # le fichier est compresse, sauf si le transport l'a deja decode
            if content[:2] == b"\x1f\x8b":
                content = gzip.decompress(content)
            lines = content.decode("utf-8", errors="replace").splitlines()

            self._index = parse_title_index(lines)
            self._index_loaded_at = self._clock()
            logger.info("anidb title index loaded", shows=len(self._index))
            return self._index

    # ---- anime document -----------------------------------------------

    def _fetch_anime(self, aid: str, options: ResolutionOptions) -> ET.Element:
        """
        Document XML de l'anime (cache en memoire, rate limite).

        Raises:
            ScrapeError: NOTHING_FOUND, TRANSPORT
        """
        cache_key = ResultCache.make_key(ANIDB, aid)
        content = self._cache.get(cache_key)
        if content is None:
            self._get_client()
            response = self._api.execute(
                "GET",
                self.API_URL,
                cancel=options.cancel,
                params={
                    "request": "anime",
                    "client": self._config.api_key,
                    "clientver": self._client_version,
                    "protover": 1,
                    "aid": aid,
                },
            )
            content = response.text
            anime = parse_anime_document(content)
            # TTL compte depuis l'insertion: une lecture ne renouvelle pas l'entree
            self._cache.put(cache_key, content)
            return anime
        return parse_anime_document(content)

    def get_metadata(self, options: ResolutionOptions) -> MetadataRecord:
        """
        Metadonnees d'un anime.

        Titre: langue demandee, puis langue de repli et anglais (repli de
        langue), puis titre principal.

        Raises:
            ScrapeError: MISSING_IDENTIFIER, NOTHING_FOUND, TRANSPORT, FEATURE_DISABLED
        """
        self._check_enabled()
        if options.media_type is MediaType.EPISODE:
            return self.get_episode(options)

        aid = self._identity.resolve(options).value
        anime = self._fetch_anime(aid, options)

        record = self._parse_anime(aid, anime, options.language)
        self._fallback.resolve(
            record,
            options.language,
            lambda language: self._parse_anime(aid, anime, language),
            fields=("title",),
        )
        if is_blank(record.title):
            record.title = record.original_title

        episodes = self._parse_episodes(anime, options.language)
        record.episode_groups = populated_groups(episodes)
        logger.debug("anidb metadata", id=aid, title=record.title)
        return record

    def _parse_anime(self, aid: str, anime: ET.Element, language: str) -> MetadataRecord:
        record = MetadataRecord(provider_id=ANIDB, media_type=MediaType.TV_SHOW)
        record.set_id(ANIDB, aid)
        return fill_anime_metadata(
            record,
            anime,
            language,
            number_of_tags=self._config.number_of_tags,
            minimum_tags_weight=self._config.minimum_tags_weight,
        )

    def get_ratings(self, options: ResolutionOptions) -> list[Rating]:
        return list(self.get_metadata(options).ratings.values())

    def get_media_ids(self, options: ResolutionOptions) -> dict[str, str]:
        return dict(self.get_metadata(options).ids)

    # ---- episodes -----------------------------------------------------

    def get_episode_list(self, options: ResolutionOptions) -> list[MetadataRecord]:
        """Episodes du document anime (une seule requete, pas de pagination)."""
        self._check_enabled()
        aid = self._identity.resolve_show(options).value
        anime = self._fetch_anime(aid, options)
        episodes = self._parse_episodes(anime, options.language)
        logger.debug("anidb episode list", id=aid, episodes=len(episodes))
        return episodes

    def get_episode(self, options: ResolutionOptions) -> MetadataRecord:
        self._check_enabled()
        self._identity.resolve_show(options)
        self._identity.check_episode_request(options)
        episodes = self.get_episode_list(options.for_show())
        return self._identity.find_episode(options, episodes)

    def _parse_episodes(self, anime: ET.Element, language: str) -> list[MetadataRecord]:
        return [
            self._to_episode_record(episode, language)
            for episode in parse_episodes(anime.find("episodes"))
        ]

    def _to_episode_record(self, episode: AniDbEpisode, language: str) -> MetadataRecord:
        record = self._episode_in(episode, language)
        self._fallback.resolve(
            record, language, lambda lang: self._episode_in(episode, lang), fields=("title",)
        )
        if is_blank(record.title):
            record.title = episode.titles.get(_ROMAJI, "")

        if episode.special:
            raw = RawEpisodeNumbering(aired_season=0, aired_episode=episode.number)
        else:
            raw = RawEpisodeNumbering(absolute_number=episode.number)
        self._normalizer.apply(record, raw)

        record.plot = episode.summary
        record.runtime = episode.runtime
        record.release_date = episode.airdate
        record.year = episode.airdate.year if episode.airdate else 0
        if episode.rating > 0:
            record.add_rating(Rating(ANIDB, episode.rating, episode.votes))
        return record

    @staticmethod
    def _episode_in(episode: AniDbEpisode, language: str) -> MetadataRecord:
        record = MetadataRecord(provider_id=ANIDB, media_type=MediaType.EPISODE)
        record.set_id(ANIDB, episode.id)
        record.title = episode.titles.get(language.lower(), "")
        return record

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None
            self._api = None
            self._downloads = None
