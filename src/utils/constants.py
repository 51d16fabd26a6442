"""
Constantes globales du moteur de resolution.

- Namespaces d'IDs et ordre de priorite pour la resolution d'identite
- Sentinelle DISPLAY pour les episodes diffuses apres une saison
- Seuils et valeurs par defaut (score, cache, rate limiting)
"""

# Namespaces d'IDs externes
TMDB = "tmdb"
IMDB = "imdb"
TVDB = "tvdb"
TVRAGE = "tvrage"
TVMAZE = "tvmaze"
ANIDB = "anidb"
ZAP2IT = "zap2it"

# Ordre de priorite apres l'ID natif du fournisseur
ID_PRIORITY = (IMDB, TMDB, TVDB, TVRAGE)

# Episode "diffuse apres la saison N": place apres tous les vrais episodes
DISPLAY_AFTER_SEASON_EPISODE = 4096

# Seuil de pre-filtrage des candidats de recherche (pool brut non filtre)
SEARCH_SCORE_THRESHOLD = 0.75

# Langue de dernier recours de la chaine de repli
ENGLISH = "en"

# Cache en memoire des listes d'episodes (600 entrees / 5 minutes)
CACHE_MAX_ENTRIES = 600
CACHE_TTL_SECONDS = 5 * 60

# Protection anti-flood AniDB: 1 requete toutes les 2 secondes
ANIDB_RATE_CAPACITY = 1
ANIDB_RATE_WINDOW = 2.0
