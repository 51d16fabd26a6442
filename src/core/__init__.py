"""
Couche domaine (core).

Contient les entités, ports (interfaces de capacité), objets valeur et la
taxonomie d'erreurs. Cette couche n'a AUCUNE dépendance vers l'infrastructure
(HTTP, cache, configuration).

Sous-packages :
- entities/ : MetadataRecord, SearchCandidate, EpisodeGroup, Rating, Person
- ports/ : Interfaces de capacité implémentées par les fournisseurs
- value_objects/ : ResolutionOptions, ProviderConfig
- errors : ScrapeError et ErrorKind
"""
