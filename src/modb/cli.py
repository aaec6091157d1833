"""CLI entry point for the MODB catalog browser.

Provides commands:
  - home: Featured title plus today's trending carousel
  - browse: Page through movies, TV shows, trending titles or people
  - search: One-shot multi search across the catalog
  - show: Detail page for one movie, show or person
  - tui: Launch the interactive terminal browser
  - logs: Replay list and search activity from the TUI log files
  - config: Inspect settings and manage the TMDB credential
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from collections import Counter
from pathlib import Path
from typing import Annotated

import keyring
import typer
from keyring.errors import KeyringError, PasswordDeleteError
from rich.console import Console
from rich.table import Table

from modb.browse import PagedListController, SearchController
from modb.catalog import (
    DETAIL_SECTIONS,
    RESOURCES,
    CatalogError,
    TMDBClient,
    format_option,
    get_resource,
)
from modb.config import (
    DEFAULT_CONFIG_PATH,
    KEY_NAME,
    SERVICE_NAME,
    ClientConfig,
    credential_kind,
    find_api_key,
    load_client_config,
)
from modb.formatter import details_renderables, featured_panel, results_table
from modb.models import Details, FilterSet, ListState, ResultItem, SearchState

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="MODB - Browse movies, TV shows and people from TMDB",
    rich_markup_mode="rich",
)
console = Console()

config_app = typer.Typer(help="Inspect settings and manage the TMDB credential")
app.add_typer(config_app, name="config")

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to JSON config (default: config/modb.json)"),
]

FEATURED_FILTERS = FilterSet(category="all", duration="day")


def _load_config(config_path: Path | None) -> ClientConfig:
    try:
        return load_client_config(config_path)
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    except (ValueError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1)


async def collect_pages(
    client: TMDBClient, resource: str, filters: FilterSet, pages: int
) -> ListState:
    """Drive a PagedListController until ``pages`` pages loaded or it stops."""
    controller = PagedListController(resource, client.fetch_page)
    try:
        task = controller.reset(filters)
        loaded = 0
        while task is not None:
            await task
            loaded += 1
            if loaded >= pages or controller.state.status.is_error:
                break
            task = controller.load_next_page()
        return controller.state
    finally:
        controller.close()


async def run_search(client: TMDBClient, query: str, result_cap: int) -> SearchState:
    """Run ``query`` through a SearchController without waiting for the debounce."""
    controller = SearchController(client.fetch_search, result_cap=result_cap)
    try:
        controller.set_query(query)
        task = controller.submit()
        if task is not None:
            await task
        return controller.state
    finally:
        controller.close()


async def _browse(config: ClientConfig, resource: str, filters: FilterSet, pages: int) -> ListState:
    async with TMDBClient(config) as client:
        return await collect_pages(client, resource, filters, pages)


async def _search(config: ClientConfig, query: str) -> SearchState:
    async with TMDBClient(config) as client:
        return await run_search(client, query, config.search_result_cap)


@app.command()
def browse(
    resource: Annotated[
        str,
        typer.Argument(help=f"What to list: {', '.join(RESOURCES)}"),
    ] = "movie",
    category: Annotated[
        str | None,
        typer.Option("--category", help="List category (e.g. popular, top_rated, all)"),
    ] = None,
    duration: Annotated[
        str | None,
        typer.Option("--duration", help="Trending window: day or week"),
    ] = None,
    pages: Annotated[
        int,
        typer.Option("--pages", "-p", min=1, help="Number of pages to load"),
    ] = 1,
    config_path: ConfigOption = None,
) -> None:
    """List catalog entries page by page, the way the browse screens do."""
    try:
        spec = get_resource(resource)
    except KeyError as e:
        console.print(f"[red]Error:[/red] {e.args[0]}")
        raise typer.Exit(code=1)

    overrides = {
        name: value
        for name, value in (("category", category), ("duration", duration))
        if value is not None
    }
    try:
        filters = spec.validate(FilterSet(overrides))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    config = _load_config(config_path)
    state = asyncio.run(_browse(config, resource, filters, pages))

    choice = " / ".join(format_option(v) for v in filters.values())
    title = f"{spec.label} - {choice}" if choice else spec.label
    if state.items:
        console.print(results_table(state.items, title))
    if state.status.is_error:
        console.print(f"[red]Failed to load page {state.next_page}:[/red] {state.status.message}")
        raise typer.Exit(code=1)
    if state.status.is_exhausted:
        console.print(f"[dim]You've seen all available {spec.label.lower()}.[/dim]")
    else:
        console.print(f"[dim]{len(state.items)} entries; next page: {state.next_page}[/dim]")


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Title or person name")],
    config_path: ConfigOption = None,
) -> None:
    """Search movies, TV shows and people at once."""
    if not query.strip():
        console.print("[red]Error:[/red] query cannot be empty")
        raise typer.Exit(code=1)

    config = _load_config(config_path)
    state = asyncio.run(_search(config, query))

    if state.status.is_error:
        console.print(f"[red]Search failed:[/red] {state.status.message}")
        raise typer.Exit(code=1)
    if not state.results:
        console.print(f'[yellow]No results found for "{query.strip()}"[/yellow]')
        return
    console.print(results_table(state.results, f'Results for "{query.strip()}"'))


@app.command()
def tui(config_path: ConfigOption = None) -> None:
    """Launch the interactive terminal browser."""
    from modb.tui import run_tui

    run_tui(config_path)




async def load_home(
    client: TMDBClient, filters: FilterSet
) -> tuple[ListState, ListState]:
    """Load the featured pool (trending today, all types) and the carousel."""
    if filters == FEATURED_FILTERS:
        state = await collect_pages(client, "trending", filters, 1)
        return state, state
    featured, carousel = await asyncio.gather(
        collect_pages(client, "trending", FEATURED_FILTERS, 1),
        collect_pages(client, "trending", filters, 1),
    )
    return featured, carousel


async def _home(config: ClientConfig, filters: FilterSet) -> tuple[ListState, ListState]:
    async with TMDBClient(config) as client:
        return await load_home(client, filters)


async def _details(config: ClientConfig, media_type: str, item_id: int) -> Details:
    async with TMDBClient(config) as client:
        return await client.fetch_details(media_type, item_id)


@app.command()
def home(
    category: Annotated[
        str,
        typer.Option("--category", help="Carousel: all, movie or tv"),
    ] = "all",
    config_path: ConfigOption = None,
) -> None:
    """Show a random featured title and today's trending carousel."""
    try:
        filters = get_resource("trending").validate(FilterSet(category=category, duration="day"))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    config = _load_config(config_path)
    featured, carousel = asyncio.run(_home(config, filters))

    for state in (featured, carousel):
        if state.status.is_error:
            console.print(f"[red]Failed to load trending titles:[/red] {state.status.message}")
            raise typer.Exit(code=1)

    if featured.items:
        pick: ResultItem = random.choice(featured.items)
        console.print(featured_panel(pick))
    title = f"Trending today - {format_option(filters['category'])}"
    if carousel.items:
        console.print(results_table(carousel.items, title))
    else:
        console.print("[yellow]Nothing is trending right now.[/yellow]")


@app.command()
def show(
    media_type: Annotated[
        str,
        typer.Argument(help=f"One of: {', '.join(DETAIL_SECTIONS)}"),
    ],
    item_id: Annotated[int, typer.Argument(help="TMDB id (see the ID column of browse/search)")],
    config_path: ConfigOption = None,
) -> None:
    """Show the detail page for one movie, TV show or person."""
    if media_type not in DETAIL_SECTIONS:
        console.print(
            f"[red]Error:[/red] no detail page for '{media_type}'; "
            f"choose from: {', '.join(DETAIL_SECTIONS)}"
        )
        raise typer.Exit(code=1)

    config = _load_config(config_path)
    try:
        details = asyncio.run(_details(config, media_type, item_id))
    except CatalogError as e:
        console.print(f"[red]Could not load /{media_type}/{item_id}:[/red] {e}")
        raise typer.Exit(code=1)

    for renderable in details_renderables(details):
        console.print(renderable)


# ---------------------------------------------------------------------------
# logs
# ---------------------------------------------------------------------------

LEVEL_ORDER = {"DEBUG": 0, "INFO": 1, "WARNING": 2, "ERROR": 3, "CRITICAL": 4}
LEVEL_STYLES = {
    "DEBUG": "dim",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "bold red",
    "CRITICAL": "bold red on white",
}


def _read_log_entries(log_files: list[Path]) -> tuple[list[dict], int]:
    """Parse JSON lines from ``log_files``; returns entries and the bad-line count."""
    entries: list[dict] = []
    bad_lines = 0
    for log_file in log_files:
        with log_file.open(encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    bad_lines += 1
                    continue
                if isinstance(entry, dict):
                    entries.append(entry)
                else:
                    bad_lines += 1
    return entries, bad_lines


def _entry_matches(
    entry: dict,
    *,
    min_level: int = 0,
    since: str | None = None,
    resource: str | None = None,
    epoch: int | None = None,
    trace: str | None = None,
) -> bool:
    if LEVEL_ORDER.get(entry.get("level", "INFO"), 0) < min_level:
        return False
    if since and entry.get("ts", "") < since:
        return False
    if resource is not None and entry.get("resource") != resource:
        return False
    if epoch is not None and entry.get("epoch") != epoch:
        return False
    if trace and not str(entry.get("trace", "")).startswith(trace):
        return False
    return True


def _resource_summary(entries: list[dict]) -> str:
    """``movie: 4 (1 failed) | search: 2`` for entries tied to a list.

    Controllers log failed fetches at WARNING, so anything at or above it
    counts as failed.
    """
    totals: Counter[str] = Counter()
    failed: Counter[str] = Counter()
    for entry in entries:
        name = entry.get("resource")
        if not name:
            continue
        totals[name] += 1
        if LEVEL_ORDER.get(entry.get("level", "INFO"), 0) >= LEVEL_ORDER["WARNING"]:
            failed[name] += 1
    parts = []
    for name, count in sorted(totals.items()):
        part = f"{name}: {count}"
        if failed[name]:
            part += f" ({failed[name]} failed)"
        parts.append(part)
    return " | ".join(parts)


@app.command(name="logs")
def logs_cmd(
    resource: Annotated[
        str | None,
        typer.Option(
            "--resource", "-r", help="Only one list (movie, tv, trending, people, search)"
        ),
    ] = None,
    epoch: Annotated[
        int | None,
        typer.Option("--epoch", "-e", help="Only one filter series of that list"),
    ] = None,
    level: Annotated[
        str | None,
        typer.Option("--level", "-l", help="Minimum level (DEBUG, INFO, WARNING, ERROR)"),
    ] = None,
    since: Annotated[
        str | None,
        typer.Option("--since", "-s", help="Entries from this date onward (YYYY-MM-DD)"),
    ] = None,
    trace: Annotated[
        str | None,
        typer.Option("--trace", "-t", help="Trace id prefix"),
    ] = None,
    tail: Annotated[
        int,
        typer.Option("--tail", "-n", help="Show only the last N entries (0 = all)"),
    ] = 0,
    log_dir: Annotated[
        Path,
        typer.Option("--log-dir", help="Directory holding tui-*.log files"),
    ] = Path("logs"),
) -> None:
    """Replay what the browse lists and the search box did.

    Examples:

    \\b
      modb logs --resource movie              # every reset/page/failure of Movies
      modb logs -r movie --epoch 3            # one filter series
      modb logs -r search --level WARNING     # failed searches
    """
    min_level = 0
    if level:
        if level.upper() not in LEVEL_ORDER:
            choices = ", ".join(LEVEL_ORDER)
            console.print(f"[red]Unknown level '{level}'. Choose from: {choices}[/red]")
            raise typer.Exit(1)
        min_level = LEVEL_ORDER[level.upper()]

    log_files = sorted(log_dir.glob("tui-*.log")) if log_dir.exists() else []
    if not log_files:
        console.print(f"[dim]No TUI log files found in {log_dir}/[/dim]")
        return

    entries, bad_lines = _read_log_entries(log_files)
    rows = [
        entry
        for entry in entries
        if _entry_matches(
            entry,
            min_level=min_level,
            since=since,
            resource=resource,
            epoch=epoch,
            trace=trace,
        )
    ]
    if not rows:
        console.print("[dim]No log entries matched the given filters.[/dim]")
        return
    if tail > 0:
        rows = rows[-tail:]

    table = Table(show_header=True, header_style="bold", expand=True)
    table.add_column("Timestamp", style="dim", no_wrap=True, min_width=19)
    table.add_column("Level", no_wrap=True, min_width=7)
    table.add_column("Resource", no_wrap=True)
    table.add_column("Epoch", justify="right", no_wrap=True)
    table.add_column("Message", overflow="fold")
    for entry in rows:
        lvl = entry.get("level", "")
        style = LEVEL_STYLES.get(lvl)
        entry_epoch = entry.get("epoch")
        table.add_row(
            entry.get("ts", ""),
            f"[{style}]{lvl}[/{style}]" if style else lvl,
            entry.get("resource") or "[dim]-[/dim]",
            "-" if entry_epoch is None else str(entry_epoch),
            entry.get("msg", ""),
        )
    console.print(table)

    summary = _resource_summary(rows)
    if summary:
        console.print(f"[bold]By list:[/bold] {summary}")
    suffix = f", {bad_lines} unreadable line(s) skipped" if bad_lines else ""
    console.print(f"[dim]{len(rows)} entries from {len(log_files)} file(s){suffix}[/dim]")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


def _mask(credential: str) -> str:
    # Fixed-width mask: neither the tail nor the length is shown.
    return credential[:4] + "*" * 8


@config_app.command("show")
def show_config(config_path: ConfigOption = None) -> None:
    """Print the resolved settings and where the TMDB credential comes from."""
    try:
        config = load_client_config(config_path, require_api_key=False)
    except (ValueError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1)

    path = config_path or DEFAULT_CONFIG_PATH
    table = Table(show_header=False, box=None)
    table.add_column(style="bold cyan", no_wrap=True)
    table.add_column()
    table.add_row("Config file", f"{path}" if path.exists() else f"{path} (not found, defaults)")
    table.add_row("Base URL", config.base_url)
    table.add_row("Language", config.language)
    table.add_row("Watch region", config.watch_region)
    table.add_row("Search debounce", f"{config.search_debounce_seconds}s")
    table.add_row("Search results", str(config.search_result_cap))
    table.add_row("Log directory", config.log_dir)

    if not config.api_key:
        console.print(table)
        console.print(
            "[yellow]No TMDB credential configured.[/yellow]\n"
            "Set it with: [bold]modb config set-api-key YOUR_KEY[/bold]"
        )
        raise typer.Exit(code=1)

    stored, source = find_api_key()
    if stored != config.api_key:
        source = "config file"
    kind = credential_kind(config.api_key) or "unrecognised format"
    table.add_row("Credential", f"{_mask(config.api_key)} ({kind}, from {source})")
    console.print(table)


@config_app.command("set-api-key")
def set_api_key(
    key: Annotated[str, typer.Argument(help="TMDB v3 API key or v4 read access token")],
) -> None:
    """Store the TMDB credential in the system keyring."""
    key = key.strip()
    kind = credential_kind(key)
    if kind is None:
        console.print(
            "[red]Error:[/red] not a TMDB credential: expected a 32-character v3 API key "
            "or a v4 read access token"
        )
        raise typer.Exit(code=1)

    try:
        keyring.set_password(SERVICE_NAME, KEY_NAME, key)
    except KeyringError as e:
        console.print(f"[red]Error:[/red] keyring refused the credential: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Stored {kind}[/green] {_mask(key)} in keyring service {SERVICE_NAME}")


@config_app.command("remove-api-key")
def remove_api_key() -> None:
    """Forget the TMDB credential stored in the system keyring."""
    try:
        keyring.delete_password(SERVICE_NAME, KEY_NAME)
    except PasswordDeleteError:
        console.print(f"[yellow]No credential stored in keyring service {SERVICE_NAME}.[/yellow]")
        return
    except KeyringError as e:
        console.print(f"[red]Error:[/red] keyring refused the removal: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed TMDB credential[/green] from keyring service {SERVICE_NAME}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
