"""
Fonctions utilitaires partagees par les adaptateurs de fournisseurs.

Ce module centralise les conversions tolerantes utilisees lors du parsing
des reponses amont. Une valeur illisible degrade vers la valeur par defaut
au lieu d'interrompre la recuperation complete:
- parse_int / parse_float / parse_date / parse_year
- is_valid_imdb_id : validation du format ttNNNNNN
- clean_title / clear_year_from_title / strip_html
"""

import html
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Optional

from loguru import logger

_IMDB_ID_PATTERN = re.compile(r"^tt\d{6,}$")
_HTML_TAG_PATTERN = re.compile(r"<[^>]+>")


def is_blank(value: Optional[str]) -> bool:
    """Vrai pour None, chaine vide ou uniquement des espaces."""
    return value is None or not str(value).strip()


def is_valid_imdb_id(value: Optional[str]) -> bool:
    """Verifie le format d'un ID IMDb (tt suivi d'au moins 6 chiffres)."""
    if is_blank(value):
        return False
    return bool(_IMDB_ID_PATTERN.match(str(value).strip()))


def strip_invisible_chars(text: str) -> str:
    """
    Retire les caractères Unicode invisibles d'une chaîne.

    Supprime les caractères de contrôle et les marques directionnelles
    qui peuvent provenir des APIs (LRM, RLM, BOM, etc.).
    """
    result = []
    for char in text:
        category = unicodedata.category(char)
        if category in ("Cf", "Cc"):
            continue
        result.append(char)
    return "".join(result)


def clean_title(title: Optional[str]) -> str:
    """Nettoie un titre : retire les caractères invisibles et les espaces superflus."""
    if not title:
        return ""
    return strip_invisible_chars(title).strip()


def clear_year_from_title(title: str, year: int) -> str:
    """Retire un "(annee)" final d'un titre (entrees TVDB du type "Show (2005)")."""
    if not title or not year:
        return title
    return re.sub(rf"\({year}\)$", "", title).strip()


def strip_html(text: Optional[str]) -> str:
    """Reduit un fragment HTML (synopsis TVmaze) a son texte."""
    if not text:
        return ""
    without_tags = _HTML_TAG_PATTERN.sub("", text)
    return re.sub(r"\s+", " ", html.unescape(without_tags)).strip()


def parse_int(value: Any, default: int = 0, field: str = "") -> int:
    """
    Convertit une valeur en entier, ou retourne default.

    Accepte les flottants serialises en texte ("3.0" -> 3), format
    utilise par TVDB pour les numeros DVD.
    """
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError):
        logger.debug("could not parse int", field=field, value=value)
        return default


def parse_optional_int(value: Any, field: str = "") -> Optional[int]:
    """Comme parse_int mais distingue l'absence (None) de zero."""
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        logger.debug("could not parse int", field=field, value=value)
        return None


def parse_float(value: Any, default: float = 0.0, field: str = "") -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("could not parse float", field=field, value=value)
        return default


def parse_date(value: Any) -> Optional[date]:
    """Parse une date YYYY-MM-DD (ou un prefixe ISO), None si illisible."""
    if not value:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        logger.debug("could not parse date", value=text)
        return None


def parse_year(value: Any) -> int:
    """Annee depuis une date YYYY-MM-DD, 0 si absente ou illisible."""
    text = str(value or "").strip()
    if len(text) >= 4 and text[:4].isdigit():
        return int(text[:4])
    return 0
