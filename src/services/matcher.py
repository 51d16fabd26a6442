"""
Service de scoring pour le classement des resultats de recherche.

SearchScorer calcule une similarite normalisee (distance d'edition) entre
la requete et les titres d'un candidat, puis classe les candidats.

Regles:
- Score dans [0, 1], 1.0 pour deux chaines identiques apres normalisation
- Plusieurs variantes de titre (localisations, synonymes): on garde le max
- Ordre final: score decroissant puis ID croissant (sortie stable)

Le scoring est deterministe pour des resultats reproductibles.
"""

from dataclasses import replace
from typing import Iterable, Optional

from rapidfuzz import utils
from rapidfuzz.distance import Levenshtein

from src.core.entities.metadata import SearchCandidate


def calculate_title_score(query: str, candidate_title: str) -> float:
    """
    Calculate title similarity score (0.0-1.0).

    Normalized Levenshtein similarity. Both strings go through
    default_process (lowercase, non-alphanumeric stripped).
    A blank query or title scores 0.0.
    """
    if not query or not candidate_title:
        return 0.0
    left = utils.default_process(query)
    right = utils.default_process(candidate_title)
    if not left or not right:
        return 0.0
    return Levenshtein.normalized_similarity(left, right)


class SearchScorer:
    """
    Score et classe des SearchCandidate.

    Attributes:
        threshold: Seuil de pre-filtrage optionnel (None = pas de filtre)

    Example:
        scorer = SearchScorer(threshold=0.75)
        score = scorer.score("Potter", ["Harry Potter"])
        ranked = scorer.rank(candidates)
    """

    def __init__(self, threshold: Optional[float] = None) -> None:
        self.threshold = threshold

    def score(self, query: str, variants: Iterable[Optional[str]]) -> float:
        """Meilleure similarite entre la requete et les variantes de titre."""
        best = 0.0
        for variant in variants:
            if not variant:
                continue
            best = max(best, calculate_title_score(query, variant))
            if best == 1.0:
                break
        return best

    def score_candidate(
        self,
        query: str,
        candidate: SearchCandidate,
        extra_variants: Iterable[Optional[str]] = (),
    ) -> SearchCandidate:
        """
        Retourne une copie du candidat avec son score calcule.

        Le titre et le titre original sont toujours compares, en plus
        des variantes supplementaires (synonymes, alias).
        """
        variants = [candidate.title, candidate.original_title, *extra_variants]
        return replace(candidate, score=self.score(query, variants))

    def rank(
        self, candidates: Iterable[SearchCandidate], apply_threshold: bool = True
    ) -> list[SearchCandidate]:
        """
        Classe les candidats (score decroissant, ID croissant).

        Un meme ID n'apparait qu'une fois (meilleur score conserve).
        Si un seuil est configure, les candidats en dessous sont ecartes.
        """
        best_by_id: dict[str, SearchCandidate] = {}
        for candidate in candidates:
            current = best_by_id.get(candidate.id)
            if current is None or candidate.score > current.score:
                best_by_id[candidate.id] = candidate

        ranked = list(best_by_id.values())
        if apply_threshold and self.threshold is not None:
            ranked = [c for c in ranked if c.score >= self.threshold]
        return sorted(ranked, key=SearchCandidate.sort_key)
