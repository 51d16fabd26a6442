"""
Tests de l'EpisodeNumberingNormalizer.

Regles: AIRED tel quel, ABSOLUTE = (1, n), DVD si fourni, DISPLAY depuis
"airs before"/"airs after" (4096), ALTERNATE si fourni, groupes non
supportes jamais remplis.
"""

from src.core.entities.metadata import EpisodeGroup, EpisodeNumber, MetadataRecord
from src.services.episode_numbering import (
    EpisodeNumberingNormalizer,
    RawEpisodeNumbering,
    populated_groups,
)

ALL_GROUPS = set(EpisodeGroup)


class TestNormalize:
    """Tests de normalize()."""

    def test_aired_verbatim(self) -> None:
        normalizer = EpisodeNumberingNormalizer(ALL_GROUPS)

        numbers = normalizer.normalize(RawEpisodeNumbering(aired_season=3, aired_episode=7))

        assert numbers == {EpisodeGroup.AIRED: EpisodeNumber(3, 7)}

    def test_absolute_season_is_one(self) -> None:
        normalizer = EpisodeNumberingNormalizer(ALL_GROUPS)

        numbers = normalizer.normalize(RawEpisodeNumbering(absolute_number=52))

        assert numbers[EpisodeGroup.ABSOLUTE] == EpisodeNumber(1, 52)

    def test_dvd_only_when_both_supplied(self) -> None:
        normalizer = EpisodeNumberingNormalizer(ALL_GROUPS)

        partial = normalizer.normalize(RawEpisodeNumbering(dvd_season=1))
        full = normalizer.normalize(RawEpisodeNumbering(dvd_season=1, dvd_episode=4))

        assert EpisodeGroup.DVD not in partial
        assert full[EpisodeGroup.DVD] == EpisodeNumber(1, 4)

    def test_display_airs_before(self) -> None:
        normalizer = EpisodeNumberingNormalizer(ALL_GROUPS)

        numbers = normalizer.normalize(
            RawEpisodeNumbering(airs_before_season=2, airs_before_episode=1, airs_after_season=1)
        )

        assert numbers[EpisodeGroup.DISPLAY] == EpisodeNumber(2, 1)

    def test_display_airs_after_sorts_last(self) -> None:
        normalizer = EpisodeNumberingNormalizer(ALL_GROUPS)

        numbers = normalizer.normalize(RawEpisodeNumbering(airs_after_season=5))

        assert numbers[EpisodeGroup.DISPLAY] == EpisodeNumber(5, 4096)

    def test_display_absent_without_hints(self) -> None:
        normalizer = EpisodeNumberingNormalizer(ALL_GROUPS)

        numbers = normalizer.normalize(RawEpisodeNumbering(aired_season=1, aired_episode=1))

        assert EpisodeGroup.DISPLAY not in numbers

    def test_alternate_verbatim(self) -> None:
        normalizer = EpisodeNumberingNormalizer(ALL_GROUPS)

        numbers = normalizer.normalize(
            RawEpisodeNumbering(alternate_season=2, alternate_episode=11)
        )

        assert numbers[EpisodeGroup.ALTERNATE] == EpisodeNumber(2, 11)

    def test_unsupported_groups_dropped(self) -> None:
        """Un fournisseur AIRED-only ne produit jamais d'ABSOLUTE."""
        normalizer = EpisodeNumberingNormalizer({EpisodeGroup.AIRED})

        numbers = normalizer.normalize(
            RawEpisodeNumbering(aired_season=1, aired_episode=2, absolute_number=2)
        )

        assert numbers == {EpisodeGroup.AIRED: EpisodeNumber(1, 2)}

    def test_season_zero_is_kept(self) -> None:
        """Les speciaux (saison 0) sont des numeros valides."""
        normalizer = EpisodeNumberingNormalizer({EpisodeGroup.AIRED})

        numbers = normalizer.normalize(RawEpisodeNumbering(aired_season=0, aired_episode=3))

        assert numbers[EpisodeGroup.AIRED] == EpisodeNumber(0, 3)


class TestApply:
    def test_apply_sets_record_numbers(self) -> None:
        normalizer = EpisodeNumberingNormalizer({EpisodeGroup.ABSOLUTE})
        record = MetadataRecord(provider_id="anidb")

        returned = normalizer.apply(record, RawEpisodeNumbering(absolute_number=7))

        assert returned is record
        assert record.episode_number(EpisodeGroup.ABSOLUTE) == EpisodeNumber(1, 7)
        assert record.episode_number(EpisodeGroup.AIRED) is None

    def test_populated_groups(self) -> None:
        first = MetadataRecord(provider_id="anidb")
        first.episode_numbers[EpisodeGroup.ABSOLUTE] = EpisodeNumber(1, 1)
        second = MetadataRecord(provider_id="anidb")
        second.episode_numbers[EpisodeGroup.AIRED] = EpisodeNumber(0, 1)

        assert populated_groups([first, second]) == {EpisodeGroup.ABSOLUTE, EpisodeGroup.AIRED}
        assert populated_groups([]) == set()
