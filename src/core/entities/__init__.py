"""
Entites du domaine: enregistrements de metadonnees et candidats de recherche.
"""

from src.core.entities.metadata import (
    Artwork,
    ArtworkType,
    EpisodeGroup,
    EpisodeNumber,
    MediaType,
    MetadataRecord,
    Person,
    PersonType,
    Rating,
    SearchCandidate,
)

__all__ = [
    "Artwork",
    "ArtworkType",
    "EpisodeGroup",
    "EpisodeNumber",
    "MediaType",
    "MetadataRecord",
    "Person",
    "PersonType",
    "Rating",
    "SearchCandidate",
]
