"""
Entites canoniques produites par les fournisseurs de metadonnees.

MetadataRecord est l'enregistrement unique retourne par requete, quel que
soit le fournisseur interroge. SearchCandidate represente un resultat de
recherche score.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class MediaType(Enum):
    """Type de media decrit par un enregistrement."""

    MOVIE = "movie"
    TV_SHOW = "tv_show"
    EPISODE = "episode"


class EpisodeGroup(Enum):
    """Schema de numerotation par lequel un episode peut etre adresse."""

    AIRED = "aired"
    DVD = "dvd"
    ABSOLUTE = "absolute"
    ALTERNATE = "alternate"
    DISPLAY = "display"


@dataclass(frozen=True)
class EpisodeNumber:
    """Couple (saison, episode) dans un EpisodeGroup donne."""

    season: int
    episode: int

    def __str__(self) -> str:
        return f"S{self.season:02d}E{self.episode:02d}"


@dataclass
class Rating:
    """
    Note issue d'une source.

    Attributes:
        source: Identifiant de la source (ex: "tvdb", "anidb")
        value: Valeur de la note
        votes: Nombre de votes (0 si inconnu)
        max_value: Echelle maximale declaree (toujours > 0)
    """

    source: str
    value: float
    votes: int = 0
    max_value: float = 10.0

    def __post_init__(self) -> None:
        if self.max_value <= 0:
            raise ValueError(f"max_value must be > 0, got {self.max_value}")


class PersonType(Enum):
    ACTOR = "actor"
    DIRECTOR = "director"
    WRITER = "writer"
    PRODUCER = "producer"


@dataclass
class Person:
    """Membre du casting ou de l'equipe, avec son role eventuel."""

    type: PersonType
    name: str
    role: str = ""
    thumb_url: Optional[str] = None
    ids: dict[str, str] = field(default_factory=dict)


class ArtworkType(Enum):
    POSTER = "poster"
    BACKGROUND = "background"
    BANNER = "banner"
    THUMB = "thumb"


@dataclass
class Artwork:
    """Reference vers une image hebergee par le fournisseur."""

    type: ArtworkType
    url: str
    language: str = ""
    width: int = 0
    height: int = 0


@dataclass
class MetadataRecord:
    """
    Enregistrement canonique de metadonnees.

    Construit a neuf pour chaque requete: deux requetes ne partagent jamais
    la meme instance. Une fois resolu, il porte au moins un ID dans le
    namespace de son propre fournisseur.

    Attributes:
        provider_id: Fournisseur ayant produit l'enregistrement
        media_type: Film, serie ou episode
        ids: Namespace -> ID externe (ex: {"tvdb": "81189", "imdb": "tt0903747"})
        ratings: Source -> Rating
        episode_numbers: EpisodeGroup -> EpisodeNumber (episodes uniquement)
        episode_groups: Groupes de numerotation supportes par la serie
        runtime: Duree en minutes (0 si inconnue)
    """

    provider_id: str
    media_type: MediaType = MediaType.TV_SHOW
    title: str = ""
    original_title: str = ""
    original_language: str = ""
    plot: str = ""
    tagline: str = ""
    year: int = 0
    release_date: Optional[date] = None
    runtime: int = 0
    ratings: dict[str, Rating] = field(default_factory=dict)
    ids: dict[str, str] = field(default_factory=dict)
    genres: set[str] = field(default_factory=set)
    cast: list[Person] = field(default_factory=list)
    episode_numbers: dict[EpisodeGroup, EpisodeNumber] = field(default_factory=dict)
    episode_groups: set[EpisodeGroup] = field(default_factory=set)
    status: str = ""
    certifications: list[str] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    production_companies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    artwork: list[Artwork] = field(default_factory=list)

    def set_id(self, namespace: str, value: object) -> None:
        """Enregistre un ID s'il est non vide (les 0 et chaines vides sont ignores)."""
        if value is None:
            return
        text = str(value).strip()
        if not text or text == "0":
            return
        self.ids[namespace] = text

    def get_id(self, namespace: str) -> str:
        return self.ids.get(namespace, "")

    def add_rating(self, rating: Rating) -> None:
        self.ratings[rating.source] = rating

    def episode_number(self, group: EpisodeGroup) -> Optional[EpisodeNumber]:
        """Numerotation dans un groupe, ou None si le groupe n'est pas renseigne."""
        return self.episode_numbers.get(group)

    def add_production_company(self, name: Optional[str]) -> None:
        if name and name not in self.production_companies:
            self.production_companies.append(name)

    def add_certification(self, certification: Optional[str]) -> None:
        if certification and certification not in self.certifications:
            self.certifications.append(certification)

    def add_tag(self, tag: str) -> None:
        if tag and tag not in self.tags:
            self.tags.append(tag)


@dataclass
class SearchCandidate:
    """
    Resultat de recherche score.

    Attributes:
        id: ID dans le namespace du fournisseur
        title: Titre affiche (variante la mieux notee le cas echeant)
        original_title: Titre en langue originale
        year: Annee de sortie/premiere diffusion (0 si inconnue)
        score: Similarite avec la requete, dans [0, 1]
        poster_url: URL du poster
        provider_id: Fournisseur d'origine
        ids: IDs externes connus pour ce candidat
    """

    id: str
    title: str
    original_title: str = ""
    year: int = 0
    score: float = 0.0
    poster_url: Optional[str] = None
    provider_id: str = ""
    overview: str = ""
    ids: dict[str, str] = field(default_factory=dict)

    def sort_key(self) -> tuple:
        """Cle de tri: score decroissant puis ID croissant (numerique si possible)."""
        if self.id.isdigit():
            id_key: tuple = (0, int(self.id), "")
        else:
            id_key = (1, 0, self.id)
        return (-self.score, id_key)
