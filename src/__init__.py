"""
MetaResolver - Résolution de métadonnées films et séries multi-fournisseurs.

Ce package interroge TMDB, TVDB, TVmaze et AniDB, réconcilie les identifiants
entre leurs namespaces et retourne un enregistrement canonique par requête.

Architecture : Hexagonale (Ports et Adaptateurs)
- core/ : Couche domaine (entités, ports, objets valeur, erreurs)
- services/ : Couche application (scoring, identité, numérotation, repli de langue)
- adapters/ : Couche infrastructure (CLI, clients API, cache, rate limiting)
"""
