"""
Utilitaires partages pour les commandes CLI.

Ce module fournit :
- console : instance Rich Console partagee
- ProviderChoice : fournisseurs selectionnables en ligne de commande
- get_provider : client du container pour un fournisseur
- parse_ids : conversion des options --id namespace=valeur
- scrape_errors : affichage des ScrapeError et code de sortie 1
"""

from contextlib import contextmanager
from datetime import date
from enum import Enum
from typing import Optional

import typer
from loguru import logger
from rich.console import Console

from src.container import Container
from src.core.entities.metadata import MediaType
from src.core.errors import ScrapeCancelled, ScrapeError
from src.core.value_objects.options import ResolutionOptions

console = Console()


class ProviderChoice(str, Enum):
    """Fournisseur interroge."""

    TMDB = "tmdb"
    TMDB_TV = "tmdb-tv"
    TVDB = "tvdb"
    TVMAZE = "tvmaze"
    ANIDB = "anidb"


def get_provider(container: Container, provider: ProviderChoice):
    """Retourne le client Singleton du fournisseur."""
    factories = {
        ProviderChoice.TMDB: container.tmdb_client,
        ProviderChoice.TMDB_TV: container.tmdb_tv_client,
        ProviderChoice.TVDB: container.tvdb_client,
        ProviderChoice.TVMAZE: container.tvmaze_client,
        ProviderChoice.ANIDB: container.anidb_client,
    }
    return factories[provider]()


def parse_ids(values: Optional[list[str]]) -> dict[str, str]:
    """
    Convertit ["tvdb=81189", "imdb=tt0903747"] en dictionnaire.

    Raises:
        typer.BadParameter: si une valeur n'a pas la forme namespace=id
    """
    ids: dict[str, str] = {}
    for value in values or []:
        namespace, sep, external_id = value.partition("=")
        if not sep or not namespace.strip() or not external_id.strip():
            raise typer.BadParameter(f"expected namespace=id, got '{value}'")
        ids[namespace.strip().lower()] = external_id.strip()
    return ids


def build_options(
    provider: ProviderChoice,
    query: str = "",
    ids: Optional[list[str]] = None,
    language: str = "en",
    country: str = "US",
    season: Optional[int] = None,
    episode: Optional[int] = None,
    air_date: Optional[str] = None,
) -> ResolutionOptions:
    """Options de resolution depuis les arguments de la ligne de commande."""
    media_type = MediaType.MOVIE if provider is ProviderChoice.TMDB else MediaType.TV_SHOW
    options = ResolutionOptions(
        query=query,
        ids=parse_ids(ids),
        language=language,
        certification_country=country,
        release_date_country=country,
        media_type=media_type,
        season=season,
        episode=episode,
    )
    if air_date:
        try:
            options.air_date = date.fromisoformat(air_date)
        except ValueError as e:
            raise typer.BadParameter(f"invalid air date '{air_date}' (YYYY-MM-DD)") from e
    return options


@contextmanager
def scrape_errors():
    """
    Affiche les erreurs de resolution et termine avec le code 1.

    Usage:
        with scrape_errors():
            record = client.get_metadata(options)
    """
    try:
        yield
    except ScrapeError as e:
        logger.debug("scrape failed", kind=e.kind.value, error=str(e))
        console.print(f"[red]{e.kind.value}[/red] {e.message or e}")
        raise typer.Exit(1)
    except ScrapeCancelled:
        console.print("[yellow]Annule.[/yellow]")
        raise typer.Exit(130)
