"""
Normalisation des schemas de numerotation d'episodes.

Chaque fournisseur expose ses propres champs (saison/episode diffuses,
numerotation DVD, compteur absolu, indications "diffuse avant/apres").
EpisodeNumberingNormalizer les convertit en un dictionnaire canonique
EpisodeGroup -> EpisodeNumber, limite aux groupes que le fournisseur
supporte reellement.

Regles:
- AIRED = (saison diffusee, episode diffuse) tels quels
- ABSOLUTE = (1, numero absolu): la saison est toujours 1
- DVD = (saison DVD, episode DVD) uniquement s'ils sont fournis
- DISPLAY = paire "airs before" si presente, sinon
  (saison "airs after", 4096) pour trier apres les vrais episodes
- ALTERNATE = paire alternative telle quelle si fournie

Un groupe absent n'est jamais rempli avec (0, 0).
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from src.core.entities.metadata import EpisodeGroup, EpisodeNumber, MetadataRecord
from src.utils.constants import DISPLAY_AFTER_SEASON_EPISODE


@dataclass(frozen=True)
class RawEpisodeNumbering:
    """Champs de numerotation bruts d'un episode (None = non fourni)."""

    aired_season: Optional[int] = None
    aired_episode: Optional[int] = None
    dvd_season: Optional[int] = None
    dvd_episode: Optional[int] = None
    absolute_number: Optional[int] = None
    airs_before_season: Optional[int] = None
    airs_before_episode: Optional[int] = None
    airs_after_season: Optional[int] = None
    alternate_season: Optional[int] = None
    alternate_episode: Optional[int] = None


class EpisodeNumberingNormalizer:
    """
    Convertit une numerotation brute en groupes canoniques.

    Args:
        supported: Groupes que le fournisseur sait produire
    """

    def __init__(self, supported: Iterable[EpisodeGroup]) -> None:
        self._supported = frozenset(supported)

    @property
    def supported(self) -> frozenset[EpisodeGroup]:
        return self._supported

    def normalize(self, raw: RawEpisodeNumbering) -> dict[EpisodeGroup, EpisodeNumber]:
        numbers: dict[EpisodeGroup, EpisodeNumber] = {}

        if raw.aired_season is not None and raw.aired_episode is not None:
            numbers[EpisodeGroup.AIRED] = EpisodeNumber(raw.aired_season, raw.aired_episode)

        if raw.absolute_number is not None:
            numbers[EpisodeGroup.ABSOLUTE] = EpisodeNumber(1, raw.absolute_number)

        if raw.dvd_season is not None and raw.dvd_episode is not None:
            numbers[EpisodeGroup.DVD] = EpisodeNumber(raw.dvd_season, raw.dvd_episode)

        display = self._display(raw)
        if display is not None:
            numbers[EpisodeGroup.DISPLAY] = display

        if raw.alternate_season is not None and raw.alternate_episode is not None:
            numbers[EpisodeGroup.ALTERNATE] = EpisodeNumber(
                raw.alternate_season, raw.alternate_episode
            )

        return {group: number for group, number in numbers.items() if group in self._supported}

    @staticmethod
    def _display(raw: RawEpisodeNumbering) -> Optional[EpisodeNumber]:
        if raw.airs_before_season is not None:
            return EpisodeNumber(raw.airs_before_season, raw.airs_before_episode or 0)
        if raw.airs_after_season is not None:
            return EpisodeNumber(raw.airs_after_season, DISPLAY_AFTER_SEASON_EPISODE)
        return None

    def apply(self, record: MetadataRecord, raw: RawEpisodeNumbering) -> MetadataRecord:
        """Renseigne episode_numbers sur l'enregistrement et le retourne."""
        record.episode_numbers.update(self.normalize(raw))
        return record


def populated_groups(episodes: Iterable[MetadataRecord]) -> set[EpisodeGroup]:
    """Groupes effectivement renseignes par au moins un episode."""
    groups: set[EpisodeGroup] = set()
    for episode in episodes:
        groups.update(episode.episode_numbers)
    return groups
