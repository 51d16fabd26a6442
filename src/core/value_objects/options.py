"""
Options de resolution independantes du fournisseur.

ResolutionOptions decrit une requete (recherche texte, IDs explicites,
langue cible...). ProviderConfig decrit un fournisseur (credential, langue
de repli, limites). Les deux sont des valeurs: une requete ne modifie jamais
les options d'une autre.
"""

import threading
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional

from src.core.entities.metadata import EpisodeGroup, MediaType, MetadataRecord


@dataclass
class ResolutionOptions:
    """
    Parametres d'une requete de resolution.

    Attributes:
        query: Texte libre pour la recherche
        ids: Namespace -> valeur (ex: {"imdb": "tt0903747"})
        language: Code langue ISO 639-1 demande (ex: "fr", "en")
        certification_country: Pays pour la classification (ex: "US")
        release_date_country: Pays pour la date de sortie
        metadata: Enregistrement "graine" (serie parente pour un episode)
        season, episode, episode_group: Numerotation d'un episode recherche
        air_date: Date de diffusion de reference pour un episode
        cancel: Evenement d'annulation cooperative
    """

    query: str = ""
    ids: dict[str, str] = field(default_factory=dict)
    language: str = "en"
    certification_country: str = "US"
    release_date_country: str = "US"
    metadata: Optional[MetadataRecord] = None
    media_type: MediaType = MediaType.TV_SHOW
    season: Optional[int] = None
    episode: Optional[int] = None
    episode_group: EpisodeGroup = EpisodeGroup.AIRED
    air_date: Optional[date] = None
    cancel: Optional[threading.Event] = field(default=None, compare=False, repr=False)

    def id_for(self, namespace: str) -> str:
        """Valeur non vide d'un namespace, ou chaine vide."""
        value = self.ids.get(namespace)
        if value is None:
            return ""
        return str(value).strip()

    def parent_ids(self) -> dict[str, str]:
        """IDs de la serie parente: ceux de la graine si presente, sinon les IDs directs."""
        if self.metadata is not None:
            return dict(self.metadata.ids)
        return dict(self.ids)

    def episode_ids(self) -> dict[str, str]:
        """IDs propres a l'episode (uniquement quand une graine porte ceux de la serie)."""
        if self.metadata is None:
            return {}
        return dict(self.ids)

    def has_episode_numbers(self) -> bool:
        return (
            self.season is not None
            and self.episode is not None
            and self.season >= 0
            and self.episode >= 0
        )

    def for_show(self) -> "ResolutionOptions":
        """Options de niveau serie derivees d'une requete d'episode."""
        return replace(
            self,
            ids=self.parent_ids(),
            metadata=None,
            media_type=MediaType.TV_SHOW,
            season=None,
            episode=None,
            air_date=None,
        )

    def with_language(self, language: str) -> "ResolutionOptions":
        return replace(self, language=language)

    def with_id(self, namespace: str, value: str) -> "ResolutionOptions":
        ids = dict(self.ids)
        ids[namespace] = value
        return replace(self, ids=ids)


@dataclass(frozen=True)
class ProviderConfig:
    """
    Configuration d'un fournisseur, fournie par l'hote en lecture seule.

    Attributes:
        provider_id: Namespace natif du fournisseur (ex: "tvdb")
        name: Nom lisible
        api_key: Credential (None -> fournisseur desactive)
        title_fallback: Active le repli de langue sur titre/synopsis
        fallback_language: Langue de repli (ex: "en")
        requires_api_key: Faux pour les fournisseurs publics
    """

    provider_id: str
    name: str
    api_key: Optional[str] = None
    requires_api_key: bool = True
    title_fallback: bool = True
    fallback_language: Optional[str] = "en"
    number_of_tags: int = 10
    minimum_tags_weight: int = 200

    @property
    def enabled(self) -> bool:
        """Un fournisseur a credential n'est actif que si la cle est renseignee."""
        if not self.requires_api_key:
            return True
        return bool(self.api_key and self.api_key.strip())
