"""
Services applicatifs partages par les fournisseurs.

- matcher: scoring des resultats de recherche (similarite de Levenshtein)
- identity: choix de l'ID utilisable et identification d'un episode
- episode_numbering: normalisation des schemas de numerotation
- language_fallback: completion des champs vides via une langue de repli

Les services dependent des ports et entites de core/, jamais des adaptateurs.
"""
