"""
Point d'entrée CLI de MetaResolver.

Configure le logging et expose les capacités des fournisseurs en ligne de commande.
"""

from typing import Annotated

import typer
from loguru import logger
from rich.table import Table

from .adapters.cli.commands import episode, episodes, ids, metadata, ratings, search
from .adapters.cli.helpers import console
from .config import Settings
from .container import Container
from .logging_config import configure_logging
from .utils.constants import ANIDB, TMDB, TVDB, TVMAZE

app = typer.Typer(
    name="metaresolver",
    help="Résolution de métadonnées films et séries multi-fournisseurs",
)
container = Container()

# Etat global pour les options de verbosite
state = {"verbose": 0, "quiet": False}


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Augmenter la verbosite (-v, -vv)"
        ),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Mode silencieux (erreurs uniquement)"),
    ] = False,
) -> None:
    """MetaResolver - Métadonnées TMDB, TVDB, TVmaze et AniDB."""
    if quiet:
        state["quiet"] = True
    else:
        state["verbose"] = verbose
    if quiet or verbose:
        settings = get_config()
        configure_logging(
            log_level=_console_level(),
            log_file=settings.log_file,
            rotation_size=settings.log_rotation_size,
            retention_count=settings.log_retention_count,
        )


def _console_level() -> str:
    """Niveau de log console selon les options de verbosité."""
    if state["quiet"]:
        return "ERROR"
    if state["verbose"] >= 1:
        return "DEBUG"
    return get_config().log_level


app.command()(search)
app.command()(metadata)
app.command()(episode)
app.command()(episodes)
app.command()(ratings)
app.command()(ids)


def get_config() -> Settings:
    """Récupère les paramètres de l'application depuis le container DI."""
    return container.config()


@app.command()
def info() -> None:
    """Affiche la configuration actuelle."""
    config = get_config()
    logger.info("Configuration MetaResolver")

    table = Table(title="Fournisseurs")
    table.add_column("Fournisseur", style="cyan")
    table.add_column("Etat")
    table.add_column("Débit", justify="right")
    limits = {
        TMDB: (config.tmdb_rate_capacity, config.tmdb_rate_window),
        TVDB: (config.tvdb_rate_capacity, config.tvdb_rate_window),
        TVMAZE: (config.tvmaze_rate_capacity, config.tvmaze_rate_window),
        ANIDB: (config.anidb_rate_capacity, config.anidb_rate_window),
    }
    for provider_id, (capacity, window) in limits.items():
        enabled = config.provider_config(provider_id).enabled
        rate = f"{capacity} req / {window:g} s" if capacity else "illimité"
        table.add_row(
            provider_id,
            "[green]activé[/green]" if enabled else "[red]désactivé[/red]",
            rate,
        )
    console.print(table)

    fallback = config.fallback_language if config.title_fallback else "désactivé"
    typer.echo(f"Langue de repli : {fallback}")
    typer.echo(f"Cache : {config.cache_max_entries} entrées, {config.cache_ttl_seconds} s")
    typer.echo(f"Niveau de log : {config.log_level}")


@app.command()
def version() -> None:
    """Affiche les informations de version."""
    typer.echo("MetaResolver v0.1.0")


def main() -> None:
    """Point d'entrée de l'application."""
    settings = container.config()
    configure_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        rotation_size=settings.log_rotation_size,
        retention_count=settings.log_retention_count,
    )

    logger.info("Démarrage de MetaResolver", version="0.1.0")

    app()


if __name__ == "__main__":
    main()
