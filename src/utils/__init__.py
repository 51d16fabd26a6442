"""
Utilitaires et constantes du moteur de resolution.

Ce module contient les constantes et fonctions utilitaires partagees.
"""

from src.utils.constants import (
    ANIDB,
    ID_PRIORITY,
    IMDB,
    TMDB,
    TVDB,
    TVMAZE,
    TVRAGE,
)

__all__ = [
    "ANIDB",
    "ID_PRIORITY",
    "IMDB",
    "TMDB",
    "TVDB",
    "TVMAZE",
    "TVRAGE",
]
