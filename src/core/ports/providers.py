"""
Interfaces de capacite des fournisseurs de metadonnees.

Un fournisseur concret n'implemente que le sous-ensemble qu'il supporte
reellement (ex: AniDB n'expose pas de recherche par IMDB). Chaque interface
est autonome: un adaptateur herite directement des capacites qu'il offre,
sans classe parente intermediaire.
"""

from abc import ABC, abstractmethod

from src.core.entities.metadata import MetadataRecord, Rating, SearchCandidate
from src.core.value_objects.options import ResolutionOptions


class ISearchProvider(ABC):
    """Recherche textuelle scoree."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Namespace natif du fournisseur (ex: 'tvdb')."""
        ...

    @abstractmethod
    def search(self, options: ResolutionOptions) -> list[SearchCandidate]:
        """
        Recherche des candidats pour options.query.

        Une requete vide (ou uniquement des espaces) retourne une liste vide
        sans aucun appel reseau.

        Retourne :
            Candidats tries par score decroissant puis par ID croissant
        """
        ...


class IMetadataProvider(ABC):
    """Metadonnees completes d'un film ou d'une serie."""

    @abstractmethod
    def get_metadata(self, options: ResolutionOptions) -> MetadataRecord:
        """
        Raises :
            ScrapeError(MISSING_IDENTIFIER) : aucun ID exploitable
            ScrapeError(NOTHING_FOUND) : l'ID ne correspond a rien en amont
        """
        ...


class IEpisodeListProvider(ABC):
    """Liste des episodes d'une serie et resolution d'un episode."""

    @abstractmethod
    def get_episode_list(self, options: ResolutionOptions) -> list[MetadataRecord]:
        """Tous les episodes (pagination exhaustive), numerotation normalisee."""
        ...

    @abstractmethod
    def get_episode(self, options: ResolutionOptions) -> MetadataRecord:
        """Un episode, par numero, ID externe ou date de diffusion."""
        ...


class IRatingProvider(ABC):
    """Projection des notes de get_metadata."""

    @abstractmethod
    def get_ratings(self, options: ResolutionOptions) -> list[Rating]:
        ...


class IIdProvider(ABC):
    """Projection des IDs externes de get_metadata."""

    @abstractmethod
    def get_media_ids(self, options: ResolutionOptions) -> dict[str, str]:
        ...
