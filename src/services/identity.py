"""
Resolution d'identite entre namespaces d'IDs.

IdentityResolver choisit l'ID utilisable d'une requete selon un ordre de
priorite fixe (ID natif du fournisseur, puis IMDb, TMDB, TVDB, TVRage) et
retrouve un episode dans une liste complete quand la requete ne porte pas
de numeros saison/episode:
1. par ID d'episode externe (meme ordre de priorite)
2. par date de diffusion exacte
3. sinon NOTHING_FOUND
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from loguru import logger

from src.core.entities.metadata import MetadataRecord
from src.core.errors import missing_identifier, nothing_found
from src.core.value_objects.options import ResolutionOptions
from src.utils.constants import ID_PRIORITY, IMDB
from src.utils.helpers import is_blank, is_valid_imdb_id


@dataclass(frozen=True)
class ResolvedId:
    """ID retenu et son namespace (ex: ResolvedId("imdb", "tt0903747"))."""

    namespace: str
    value: str


class IdentityResolver:
    """
    Selectionne les IDs utilisables pour un fournisseur.

    Args:
        provider_id: Namespace natif du fournisseur (prioritaire)
        supported: Namespaces externes que le fournisseur sait exploiter
                   (None = tous ceux de l'ordre de priorite)
    """

    def __init__(self, provider_id: str, supported: Optional[Iterable[str]] = None) -> None:
        self.provider_id = provider_id
        allowed = set(ID_PRIORITY if supported is None else supported)
        self._priority = [provider_id] + [
            ns for ns in ID_PRIORITY if ns in allowed and ns != provider_id
        ]

    @property
    def priority(self) -> list[str]:
        return list(self._priority)

    def select(self, ids: dict[str, str]) -> Optional[ResolvedId]:
        """Premier ID non vide (et valide pour IMDb) dans l'ordre de priorite."""
        for namespace in self._priority:
            value = ids.get(namespace)
            if is_blank(value):
                continue
            value = str(value).strip()
            if namespace == IMDB and not is_valid_imdb_id(value):
                logger.debug("ignoring malformed imdb id", value=value)
                continue
            if value == "0":
                continue
            return ResolvedId(namespace, value)
        return None

    def resolve(self, options: ResolutionOptions, allow_query: bool = False) -> Optional[ResolvedId]:
        """
        ID utilisable pour la requete.

        Args:
            options: Requete
            allow_query: Si vrai, l'absence d'ID est toleree quand une
                         recherche texte est possible (retourne None)

        Raises:
            ScrapeError: MISSING_IDENTIFIER si aucun ID et pas de requete texte
        """
        resolved = self.select(options.ids)
        if resolved is not None:
            return resolved
        if allow_query and not is_blank(options.query):
            return None
        raise missing_identifier(*self._priority, provider_id=self.provider_id)

    def resolve_show(self, options: ResolutionOptions) -> ResolvedId:
        """ID de la serie parente (IDs de la graine, sinon IDs directs)."""
        resolved = self.select(options.parent_ids())
        if resolved is None:
            raise missing_identifier(*self._priority, provider_id=self.provider_id)
        return resolved

    def check_episode_request(self, options: ResolutionOptions) -> None:
        """
        Verifie qu'une requete d'episode est exploitable avant tout appel reseau.

        Raises:
            ScrapeError: MISSING_IDENTIFIER sans numeros, sans ID d'episode
                         et sans date de diffusion
        """
        if options.has_episode_numbers():
            return
        if self.select(options.episode_ids()) is not None:
            return
        if options.air_date is not None:
            return
        raise missing_identifier(
            "season/episode", *self._priority, "air date", provider_id=self.provider_id
        )

    def find_episode(
        self, options: ResolutionOptions, episodes: list[MetadataRecord]
    ) -> MetadataRecord:
        """
        Retrouve l'episode demande dans la liste complete.

        Raises:
            ScrapeError: NOTHING_FOUND si aucun episode ne correspond
        """
        if options.has_episode_numbers():
            for episode in episodes:
                number = episode.episode_number(options.episode_group)
                if (
                    number is not None
                    and number.season == options.season
                    and number.episode == options.episode
                ):
                    return episode
            raise nothing_found(
                f"no episode S{options.season}E{options.episode} "
                f"in group {options.episode_group.value}",
                provider_id=self.provider_id,
            )

        episode_ids = options.episode_ids()
        for namespace in self._priority:
            wanted = episode_ids.get(namespace)
            if is_blank(wanted):
                continue
            wanted = str(wanted).strip()
            for episode in episodes:
                if episode.get_id(namespace) == wanted:
                    logger.debug("episode matched by id", namespace=namespace, id=wanted)
                    return episode

        if options.air_date is not None:
            for episode in episodes:
                if episode.release_date == options.air_date:
                    logger.debug("episode matched by air date", date=str(options.air_date))
                    return episode

        raise nothing_found("no matching episode", provider_id=self.provider_id)
