"""
Objets valeur decrivant une requete et la configuration d'un fournisseur.

Exports :
- ResolutionOptions : Parametres d'une requete (recherche, IDs, langue, episode)
- ProviderConfig : Configuration en lecture seule d'un fournisseur
"""

from src.core.value_objects.options import ProviderConfig, ResolutionOptions

__all__ = [
    "ProviderConfig",
    "ResolutionOptions",
]
