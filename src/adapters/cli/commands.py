"""
Commandes CLI d'interrogation des fournisseurs de metadonnees.

Chaque commande construit un ResolutionOptions, appelle la capacite
correspondante du fournisseur et affiche le resultat avec Rich.
"""

from typing import Annotated, Optional

import typer
from rich.table import Table

from src.adapters.cli.helpers import (
    ProviderChoice,
    build_options,
    console,
    get_provider,
    scrape_errors,
)
from src.container import Container
from src.core.entities.metadata import EpisodeGroup, MediaType, MetadataRecord
from src.core.ports.providers import IEpisodeListProvider

ProviderOption = Annotated[
    ProviderChoice, typer.Option("--provider", "-p", help="Fournisseur interroge")
]
IdsOption = Annotated[
    Optional[list[str]],
    typer.Option("--id", "-i", help="ID externe namespace=valeur (repetable)"),
]
LanguageOption = Annotated[str, typer.Option("--language", "-l", help="Langue ISO 639-1")]


def search(
    query: Annotated[str, typer.Argument(help="Titre recherche")],
    provider: ProviderOption = ProviderChoice.TVDB,
    ids: IdsOption = None,
    language: LanguageOption = "en",
    limit: Annotated[int, typer.Option("--limit", "-n", help="Nombre de resultats")] = 20,
) -> None:
    """Recherche un titre et affiche les candidats classes par score."""
    client = get_provider(Container(), provider)
    options = build_options(provider, query=query, ids=ids, language=language)

    with scrape_errors():
        candidates = client.search(options)

    if not candidates:
        console.print("[yellow]Aucun resultat.[/yellow]")
        return

    table = Table(title=f"Recherche {provider.value}: {query}")
    table.add_column("ID", style="cyan")
    table.add_column("Titre")
    table.add_column("Titre original", style="dim")
    table.add_column("Annee", justify="right")
    table.add_column("Score", justify="right", style="green")
    for candidate in candidates[:limit]:
        table.add_row(
            candidate.id,
            candidate.title,
            candidate.original_title,
            str(candidate.year or ""),
            f"{candidate.score:.2f}",
        )
    console.print(table)


def metadata(
    provider: ProviderOption = ProviderChoice.TVDB,
    ids: IdsOption = None,
    language: LanguageOption = "en",
    country: Annotated[str, typer.Option("--country", help="Pays de certification")] = "US",
) -> None:
    """Affiche les metadonnees completes d'un film ou d'une serie."""
    client = get_provider(Container(), provider)
    options = build_options(provider, ids=ids, language=language, country=country)

    with scrape_errors():
        record = client.get_metadata(options)
    _print_record(record)


def episode(
    season: Annotated[Optional[int], typer.Option("--season", "-s")] = None,
    number: Annotated[Optional[int], typer.Option("--episode", "-e")] = None,
    group: Annotated[EpisodeGroup, typer.Option("--group", "-g")] = EpisodeGroup.AIRED,
    air_date: Annotated[Optional[str], typer.Option("--air-date", help="YYYY-MM-DD")] = None,
    provider: ProviderOption = ProviderChoice.TVDB,
    ids: IdsOption = None,
    language: LanguageOption = "en",
) -> None:
    """Affiche un episode (par numeros, ou par date de diffusion)."""
    client = get_provider(Container(), provider)
    _require_episodes(client, provider)
    options = build_options(
        provider,
        ids=ids,
        language=language,
        season=season,
        episode=number,
        air_date=air_date,
    )
    options.episode_group = group
    options.media_type = MediaType.EPISODE

    with scrape_errors():
        record = client.get_episode(options)
    _print_record(record)


def episodes(
    provider: ProviderOption = ProviderChoice.TVDB,
    ids: IdsOption = None,
    language: LanguageOption = "en",
    group: Annotated[EpisodeGroup, typer.Option("--group", "-g")] = EpisodeGroup.AIRED,
) -> None:
    """Liste les episodes d'une serie dans un schema de numerotation."""
    client = get_provider(Container(), provider)
    _require_episodes(client, provider)
    options = build_options(provider, ids=ids, language=language)

    with scrape_errors():
        records = client.get_episode_list(options)

    numbered = [(r.episode_number(group), r) for r in records]
    numbered = [(n, r) for n, r in numbered if n is not None]
    if not numbered:
        console.print(f"[yellow]Aucun episode dans le groupe {group.value}.[/yellow]")
        return

    table = Table(title=f"Episodes ({group.value})")
    table.add_column("Episode", style="cyan")
    table.add_column("Titre")
    table.add_column("Diffusion", style="dim")
    for number, record in sorted(numbered, key=lambda item: (item[0].season, item[0].episode)):
        table.add_row(str(number), record.title, str(record.release_date or ""))
    console.print(table)
    console.print(f"[dim]{len(numbered)}/{len(records)} episodes[/dim]")


def ratings(
    provider: ProviderOption = ProviderChoice.TVDB,
    ids: IdsOption = None,
    language: LanguageOption = "en",
) -> None:
    """Affiche les notes d'un titre."""
    client = get_provider(Container(), provider)
    options = build_options(provider, ids=ids, language=language)

    with scrape_errors():
        values = client.get_ratings(options)

    if not values:
        console.print("[yellow]Aucune note.[/yellow]")
        return
    for rating in values:
        console.print(
            f"{rating.source}: [bold]{rating.value:.1f}[/bold]/{rating.max_value:g}"
            f" ({rating.votes} votes)"
        )


def ids(
    provider: ProviderOption = ProviderChoice.TVDB,
    known_ids: IdsOption = None,
    language: LanguageOption = "en",
) -> None:
    """Affiche les IDs externes connus d'un titre."""
    client = get_provider(Container(), provider)
    options = build_options(provider, ids=known_ids, language=language)

    with scrape_errors():
        media_ids = client.get_media_ids(options)

    for namespace, value in sorted(media_ids.items()):
        console.print(f"{namespace}: [cyan]{value}[/cyan]")


def _require_episodes(client, provider: ProviderChoice) -> None:
    if not isinstance(client, IEpisodeListProvider):
        console.print(f"[red]{provider.value} ne fournit pas de liste d'episodes.[/red]")
        raise typer.Exit(1)


def _print_record(record: MetadataRecord) -> None:
    title = record.title or record.original_title
    console.print(f"[bold]{title}[/bold] ({record.year or '?'})")
    if record.original_title and record.original_title != record.title:
        console.print(f"[dim]Titre original: {record.original_title}[/dim]")
    for group, number in sorted(record.episode_numbers.items(), key=lambda item: item[0].value):
        console.print(f"  {group.value}: {number}")
    if record.plot:
        console.print(record.plot)
    if record.genres:
        console.print(f"Genres: {', '.join(sorted(record.genres))}")
    if record.runtime:
        console.print(f"Duree: {record.runtime} min")
    if record.status:
        console.print(f"Statut: {record.status}")
    if record.certifications:
        console.print(f"Classification: {', '.join(record.certifications)}")
    if record.episode_groups:
        groups = ", ".join(sorted(g.value for g in record.episode_groups))
        console.print(f"Numerotation: {groups}")
    for rating in record.ratings.values():
        console.print(f"Note {rating.source}: {rating.value:.1f}/{rating.max_value:g} ({rating.votes})")
    ids_text = ", ".join(f"{ns}={value}" for ns, value in sorted(record.ids.items()))
    console.print(f"IDs: [cyan]{ids_text}[/cyan]")
    actors = [p for p in record.cast if p.role or p.name][:5]
    if actors:
        console.print("Casting: " + ", ".join(
            f"{p.name} ({p.role})" if p.role else p.name for p in actors
        ))
