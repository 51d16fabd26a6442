"""
Repli de langue pour les champs textuels vides.

Quand un fournisseur n'a pas de traduction pour la langue demandee, le titre
ou le synopsis reviennent vides. LanguageFallbackResolver re-interroge le
fournisseur dans la langue de repli, puis en anglais, et ne copie que les
champs encore vides: une valeur non vide n'est jamais ecrasee.

Chaine (au plus trois recuperations au total):
1. langue demandee (recuperation primaire, faite par l'appelant)
2. langue de repli, si configuree et differente de la langue demandee
3. anglais, si la langue de repli et la langue demandee ne sont pas "en"

Une valeur "placeholder" renvoyee par l'amont (ex: "Episode 12" non
traduit) est non vide: elle est conservee telle quelle.
"""

from typing import Callable, Optional, Sequence, TypeVar

from loguru import logger

from src.core.errors import ScrapeError
from src.utils.constants import ENGLISH
from src.utils.helpers import is_blank

T = TypeVar("T")

FILL_FIELDS = ("title", "plot")


class LanguageFallbackResolver:
    """
    Complete les champs vides d'un enregistrement par re-recuperation.

    Args:
        enabled: Active le repli (option "title fallback" du fournisseur)
        fallback_language: Langue de repli (None = pas de repli intermediaire)

    Example:
        resolver = LanguageFallbackResolver(enabled=True, fallback_language="de")
        record = resolver.resolve(record, "fr", lambda lang: fetch_show(show_id, lang))
    """

    def __init__(self, enabled: bool = True, fallback_language: Optional[str] = ENGLISH) -> None:
        self.enabled = enabled
        self.fallback_language = (fallback_language or "").strip() or None

    def fallback_chain(self, language: str) -> list[str]:
        """Langues a essayer apres la langue demandee, dans l'ordre."""
        if not self.enabled:
            return []
        chain: list[str] = []
        fallback = self.fallback_language
        if fallback and fallback != language:
            chain.append(fallback)
        if fallback != ENGLISH and language != ENGLISH:
            chain.append(ENGLISH)
        return chain

    def resolve(
        self,
        primary: T,
        language: str,
        fetch: Callable[[str], Optional[T]],
        fields: Sequence[str] = FILL_FIELDS,
    ) -> T:
        """
        Remplit les champs vides de primary a partir des langues de repli.

        Args:
            primary: Enregistrement recupere dans la langue demandee
            language: Langue demandee
            fetch: Recupere le meme element dans une autre langue
                   (None ou NOTHING_FOUND = pas de donnees, pas une erreur)
            fields: Attributs a completer

        Returns:
            primary, complete sur place

        Raises:
            ScrapeError: erreurs de transport (autres que 404) du fetch
        """
        for fallback in self.fallback_chain(language):
            blanks = [name for name in fields if is_blank(getattr(primary, name, None))]
            if not blanks:
                break

            logger.debug("filling blank fields", fields=blanks, language=fallback)
            try:
                secondary = fetch(fallback)
            except ScrapeError as e:
                if not e.is_not_found:
                    raise
                secondary = None
            if secondary is None:
                continue

            for name in blanks:
                value = getattr(secondary, name, None)
                if not is_blank(value):
                    setattr(primary, name, value)
        return primary

    def needs_fallback(self, record: object, fields: Sequence[str] = FILL_FIELDS) -> bool:
        """Vrai si le repli est actif et qu'au moins un champ est vide."""
        return self.enabled and any(is_blank(getattr(record, name, None)) for name in fields)
