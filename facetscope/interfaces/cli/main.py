"""
CLI Main - Typer-based command-line interface.

Usage:
    facetscope search "alien" --index movies --facet genre=Horror --show-facet genre
    facetscope search "" --index movies --numeric "year>=2000" --sort year:desc
    facetscope request "alien" --facet genre=Horror --show-facet genre
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from facetscope.config import FacetScopeError, get_settings
from facetscope.domains.dispatch import SlotSnapshot, parse_numeric_filter
from facetscope.domains.state import PartialSearchState, SearchState, reduce

app = typer.Typer(
    name="facetscope",
    help="facetscope - Faceted search client",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Configure logging for every command."""
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _parse_facets(pairs: list[str] | None) -> dict[str, frozenset[str]]:
    """Turn ``attr=value`` options into facet selections."""
    selections: dict[str, set[str]] = {}
    for pair in pairs or []:
        attribute, sep, value = pair.partition("=")
        if not sep or not attribute:
            raise typer.BadParameter(f"Expected attribute=value, got {pair!r}", param_hint="--facet")
        selections.setdefault(attribute.strip(), set()).add(value)
    return {attribute: frozenset(values) for attribute, values in selections.items()}


def _build_partials(
    query: str,
    facet: list[str] | None,
    numeric: list[str] | None,
    sort: list[str] | None,
    page: int,
    hits_per_page: int | None,
) -> list[PartialSearchState]:
    """Turn CLI options into the updates a UI would emit, in order."""
    try:
        numeric_filters = tuple(parse_numeric_filter(text) for text in numeric or [])
    except FacetScopeError as e:
        raise typer.BadParameter(e.message, param_hint="--numeric") from e

    return [
        PartialSearchState(
            query=query,
            facet_selections=_parse_facets(facet),
            numeric_filters=numeric_filters,
            sort=tuple(sort or ()),
            hits_per_page=hits_per_page,
        ),
        # Page last: the refinements above reset it
        PartialSearchState(page=page),
    ]


@app.command()
def search(
    query: str = typer.Argument("", help="Search query (empty matches all)"),
    index: str | None = typer.Option(None, "--index", "-i", help="Index name"),
    facet: list[str] | None = typer.Option(None, "--facet", "-f", help="Facet refinement attr=value"),
    numeric: list[str] | None = typer.Option(None, "--numeric", "-n", help="Numeric filter, e.g. year>=2020"),
    sort: list[str] | None = typer.Option(None, "--sort", "-s", help="Sort key, e.g. price:asc"),
    page: int = typer.Option(0, "--page", "-p", help="Page number (0-based)"),
    hits_per_page: int | None = typer.Option(None, "--hits-per-page", help="Results per page"),
    show_facet: list[str] | None = typer.Option(None, "--show-facet", help="Facet attribute to count"),
) -> None:
    """Search an index and show hits with facet counts."""
    settings = get_settings()
    index_name = index or settings.default_index
    if not index_name:
        console.print("[red]Error:[/red] No index given (use --index or FACETSCOPE_DEFAULT_INDEX)")
        raise typer.Exit(1)

    partials = _build_partials(query, facet, numeric, sort, page, hits_per_page)
    asyncio.run(_search_async(index_name, partials, show_facet or []))


async def _search_async(
    index_name: str, partials: list[PartialSearchState], show_facet: list[str]
) -> None:
    """Async search implementation."""
    from facetscope.adapters import SearchClient
    from facetscope.domains.session import SearchSession

    settings = get_settings()

    async with SearchClient.from_settings(settings) as client:
        session = SearchSession(client, index_name, facet_attributes=show_facet, settings=settings)
        for partial in partials:
            session.apply(partial)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Searching {index_name}...", total=None)
            try:
                view = await session.refresh()
            except FacetScopeError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1)

    _print_results(view.results)
    for attribute, snapshot in view.facet_counts.items():
        _print_facet(attribute, snapshot)


def _print_results(snapshot: SlotSnapshot) -> None:
    if snapshot.error:
        console.print(
            Panel(
                f"[bold]{snapshot.error.reason.value}[/bold]: {snapshot.error.message}",
                title="Search Error",
                style="red",
            )
        )
        return

    result = snapshot.value
    if result is None or not result.hits:
        console.print(Panel("No results found.", title="Results", style="yellow"))
        return

    table = Table(
        title=f"{result.nb_hits} hits - page {result.page + 1}/{max(result.nb_pages, 1)} "
        f"({result.processing_time_ms}ms)"
    )
    table.add_column("objectID", style="cyan")
    table.add_column("Document", style="green")
    for hit in result.hits:
        fields = {k: v for k, v in hit.items() if not k.startswith("_") and k != "objectID"}
        table.add_row(str(hit.get("objectID", "")), _truncate(json.dumps(fields, ensure_ascii=False)))
    console.print(table)


def _print_facet(attribute: str, snapshot: SlotSnapshot) -> None:
    if snapshot.error:
        console.print(
            Panel(snapshot.error.message, title=f"Facet '{attribute}' unavailable", style="red")
        )
        return

    table = Table(title=f"Facet: {attribute}")
    table.add_column("Value", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for count in snapshot.value or []:
        table.add_row(count.value, str(count.count))
    console.print(table)


def _truncate(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


@app.command()
def request(
    query: str = typer.Argument("", help="Search query (empty matches all)"),
    facet: list[str] | None = typer.Option(None, "--facet", "-f", help="Facet refinement attr=value"),
    numeric: list[str] | None = typer.Option(None, "--numeric", "-n", help="Numeric filter, e.g. year>=2020"),
    sort: list[str] | None = typer.Option(None, "--sort", "-s", help="Sort key, e.g. price:asc"),
    page: int = typer.Option(0, "--page", "-p", help="Page number (0-based)"),
    show_facet: list[str] | None = typer.Option(None, "--show-facet", help="Facet attribute to count"),
) -> None:
    """Print the request bodies a search would send, without sending them."""
    from facetscope.domains.dispatch import encode_facet_values_request, encode_search_request

    settings = get_settings()
    state = SearchState.from_settings(settings)
    for partial in _build_partials(query, facet, numeric, sort, page, None):
        state = reduce(state, partial)

    try:
        payload: dict[str, Any] = {"query": encode_search_request(state)}
        payload["facets"] = {
            attribute: encode_facet_values_request(
                state, attribute, max_facet_hits=settings.max_facet_hits
            )
            for attribute in show_facet or []
        }
    except FacetScopeError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    typer.echo(json.dumps(payload, indent=2))


if __name__ == "__main__":
    app()
