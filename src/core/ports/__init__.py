"""
Ports (interfaces abstraites) definissant les capacites des fournisseurs.

Les ports sont les frontieres de l'architecture hexagonale: le domaine
consomme ces contrats sans connaitre l'API amont qui les satisfait.

- ISearchProvider : recherche scoree
- IMetadataProvider : metadonnees d'un film/serie
- IEpisodeListProvider : liste et resolution d'episodes
- IRatingProvider : notes
- IIdProvider : IDs externes
"""

from src.core.ports.providers import (
    IEpisodeListProvider,
    IIdProvider,
    IMetadataProvider,
    IRatingProvider,
    ISearchProvider,
)

__all__ = [
    "IEpisodeListProvider",
    "IIdProvider",
    "IMetadataProvider",
    "IRatingProvider",
    "ISearchProvider",
]
