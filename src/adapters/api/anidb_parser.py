"""
Parsing des donnees AniDB: index des titres et document XML d'un anime.

Index des titres (https://wiki.anidb.net/w/API#Anime_Titles), une ligne
par titre, les lignes commencant par # sont des commentaires:

    # <aid>|<type>|<language>|<title>
    # type: 1=primary title (one per anime), 2=synonyms (multiple per anime),
    #       3=shorttitles (multiple per anime), 4=official title (one per language)
    4598|2|x-jat|_summer

Document anime (http://api.anidb.net:9001/httpapi?request=anime&aid=...):

    <anime id="1" restricted="false">
        <startdate>1989-07-15</startdate>
        <titles>
            <title xml:lang="x-jat" type="main">Kidou Keisatsu Patlabor</title>
            <title xml:lang="en" type="official">Patlabor the Movie</title>
        </titles>
        <description>...</description>
        <ratings><temporary count="1562">7.53</temporary></ratings>
        <tags><tag weight="400"><name>detective</name></tag></tags>
        <picture>83834.jpg</picture>
        <characters>...</characters>
        <episodes>...</episodes>
    </anime>
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from loguru import logger

from src.core.entities.metadata import (
    Artwork,
    ArtworkType,
    MetadataRecord,
    Person,
    PersonType,
    Rating,
)
from src.core.errors import nothing_found, transport_error
from src.utils.constants import ANIDB
from src.utils.helpers import parse_date, parse_float, parse_int, parse_optional_int

IMAGE_SERVER = "http://img7.anidb.net/pics/anime/"
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

_TITLE_LINE = re.compile(r"^(?!#)(\d+)[|](\d)[|]([\w-]+)[|](.+)$")

TITLE_MAIN = 1
TITLE_SYNONYM = 2
TITLE_SHORT = 3
TITLE_OFFICIAL = 4

_CREATOR_TYPES = {
    "Direction": PersonType.DIRECTOR,
    "Series Composition": PersonType.WRITER,
    "Original Work": PersonType.WRITER,
}


@dataclass(frozen=True)
class AniDbTitle:
    """Une ligne de l'index des titres."""

    aid: int
    type: int
    language: str
    title: str


@dataclass
class AniDbEpisode:
    """
    Episode du document anime.

    epno type="1" -> episode regulier (numero absolu),
    epno type="2" -> special (prefixe "S" retire). Les autres types
    (credits, trailers, parodies) sont ignores.
    """

    id: int
    number: int
    special: bool = False
    runtime: int = 0
    airdate: Optional[date] = None
    rating: float = 0.0
    votes: int = 0
    summary: str = ""
    titles: dict[str, str] = field(default_factory=dict)


def parse_title_index(lines: Iterable[str]) -> dict[int, list[AniDbTitle]]:
    """Regroupe les titres de l'index par aid (commentaires et lignes invalides ignores)."""
    shows: dict[int, list[AniDbTitle]] = {}
    for line in lines:
        match = _TITLE_LINE.match(line.rstrip("\r\n"))
        if not match:
            continue
        aid = int(match.group(1))
        shows.setdefault(aid, []).append(
            AniDbTitle(aid, int(match.group(2)), match.group(3), match.group(4))
        )
    return shows


def parse_anime_document(content: str | bytes) -> ET.Element:
    """
    Parse le document XML et detecte les reponses d'erreur.

    AniDB repond 200 meme en cas d'erreur, avec un document <error>.

    Raises:
        ScrapeError: NOTHING_FOUND pour "anime not found", TRANSPORT sinon
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise transport_error(f"invalid XML document: {e}", provider_id=ANIDB) from e

    error = root if root.tag == "error" else root.find("error")
    if error is not None:
        message = (error.text or "").strip()
        if "not found" in message.lower():
            raise nothing_found(message, provider_id=ANIDB)
        raise transport_error(
            message or "error response",
            status_code=parse_int(error.get("code"), default=500, field="code"),
            provider_id=ANIDB,
        )
    return root


def _text(element: Optional[ET.Element]) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def select_title(titles: Optional[ET.Element], language: str) -> str:
    """
    Titre dans une langue donnee (xml:lang exact), sans repli.

    Les titres courts sont ignores; un synonyme n'est retenu que s'il
    n'existe pas de titre officiel/principal dans cette langue.
    """
    if titles is None:
        return ""
    selected = ""
    for title in titles.findall("title"):
        title_type = title.get("type", "")
        if title_type == "short":
            continue
        if (title.get(XML_LANG) or "").lower() != language.lower():
            continue
        if title_type != "synonym" or not selected:
            selected = _text(title)
    return selected


def main_title(titles: Optional[ET.Element]) -> str:
    if titles is None:
        return ""
    for title in titles.findall("title"):
        if title.get("type", "").lower() == "main":
            return _text(title)
    return ""


def fill_anime_metadata(
    record: MetadataRecord,
    anime: ET.Element,
    language: str,
    number_of_tags: int = 10,
    minimum_tags_weight: int = 200,
) -> MetadataRecord:
    """Remplit l'enregistrement depuis <anime> (titre dans la seule langue demandee)."""
    titles = anime.find("titles")
    record.title = select_title(titles, language)
    record.original_title = main_title(titles)

    start = parse_date(_text(anime.find("startdate")))
    if start is not None:
        record.release_date = start
        record.year = start.year

    record.plot = _text(anime.find("description"))

    temporary = anime.find("ratings/temporary")
    if temporary is not None:
        value = parse_float(_text(temporary), field="rating")
        if value > 0:
            record.add_rating(
                Rating(ANIDB, value, parse_int(temporary.get("count"), field="count"))
            )

    _fill_tags(record, anime.find("tags"), number_of_tags, minimum_tags_weight)

    picture = _text(anime.find("picture"))
    if picture:
        record.artwork.append(Artwork(ArtworkType.POSTER, IMAGE_SERVER + picture, language=language))

    _fill_characters(record, anime.find("characters"))
    _fill_creators(record, anime.find("creators"))

    record.genres.add("Anime")
    return record


def _fill_tags(
    record: MetadataRecord,
    tags: Optional[ET.Element],
    number_of_tags: int,
    minimum_tags_weight: int,
) -> None:
    if tags is None:
        return
    for tag in tags.findall("tag"):
        name = _text(tag.find("name"))
        weight = parse_int(tag.get("weight"), field="weight")
        if name and weight >= minimum_tags_weight:
            record.add_tag(name)
            if len(record.tags) >= number_of_tags:
                break


def _fill_characters(record: MetadataRecord, characters: Optional[ET.Element]) -> None:
    """Le nom du personnage devient le role, le seiyuu (doubleur) devient la personne."""
    if characters is None:
        return
    for character in characters.findall("character"):
        seiyuu = character.find("seiyuu")
        name = _text(seiyuu)
        if not name:
            continue
        image = seiyuu.get("picture") if seiyuu is not None else None
        person = Person(
            PersonType.ACTOR,
            name,
            role=_text(character.find("name")),
            thumb_url=IMAGE_SERVER + image if image else None,
        )
        if seiyuu.get("id"):
            person.ids[ANIDB] = seiyuu.get("id")
        record.cast.append(person)


def _fill_creators(record: MetadataRecord, creators: Optional[ET.Element]) -> None:
    if creators is None:
        return
    for creator in creators.findall("name"):
        person_type = _CREATOR_TYPES.get(creator.get("type", ""))
        name = _text(creator)
        if person_type is not None and name:
            record.cast.append(Person(person_type, name, role=creator.get("type", "")))


def parse_episodes(episodes: Optional[ET.Element]) -> list[AniDbEpisode]:
    """Episodes reguliers et speciaux de <episodes>, les autres types sont ignores."""
    if episodes is None:
        return []
    parsed = []
    for element in episodes.findall("episode"):
        episode = _parse_episode(element)
        if episode is not None:
            parsed.append(episode)
    return parsed


def _parse_episode(element: ET.Element) -> Optional[AniDbEpisode]:
    epno = element.find("epno")
    if epno is None:
        return None
    epno_type = epno.get("type", "")
    if epno_type == "1":
        number = parse_optional_int(_text(epno), "epno")
        special = False
    elif epno_type == "2":
        number = parse_optional_int(re.sub(r"[^0-9]+", "", _text(epno)), "epno")
        special = True
    else:
        return None
    if number is None:
        logger.debug("skipping episode without number", id=element.get("id"))
        return None

    episode = AniDbEpisode(
        id=parse_int(element.get("id"), field="id"),
        number=number,
        special=special,
        runtime=parse_int(_text(element.find("length")), field="length"),
        airdate=parse_date(_text(element.find("airdate"))),
        summary=_text(element.find("summary")),
    )
    rating = element.find("rating")
    if rating is not None:
        episode.rating = parse_float(_text(rating), field="rating")
        episode.votes = parse_int(rating.get("votes"), field="votes")
    for title in element.findall("title"):
        lang = (title.get(XML_LANG) or "").lower()
        if lang:
            episode.titles[lang] = _text(title)
    return episode
