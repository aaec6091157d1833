"""Rich display formatting for catalog lists and detail views.

Shared by the CLI (printed to a Console) and the TUI detail pane (written
to a RichLog), so both front-ends show a title the same way.
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from modb.models import Details, ResultItem

RELATED_LIMIT = 10
CREDITS_LIMIT = 10


def truncate_text(text: str, max_len: int, suffix: str = "...") -> str:
    """Cut ``text`` at the last word boundary that fits in ``max_len``."""
    if len(text) <= max_len:
        return text
    cutoff = max_len - len(suffix)
    if cutoff <= 0:
        return suffix[:max_len]
    space_idx = text.rfind(" ", 0, cutoff)
    if space_idx <= 0:
        space_idx = cutoff
    return text[:space_idx].rstrip() + suffix


def format_rating(item: ResultItem) -> str:
    return f"{item.rating:.1f}" if item.rating is not None else "-"


def results_table(items: Iterable[ResultItem], title: str) -> Table:
    """Numbered table of catalog entries (browse pages, search results)."""
    table = Table(title=title, show_header=True, header_style="bold", expand=True)
    table.add_column("#", style="dim", justify="right", no_wrap=True)
    table.add_column("Title", style="bold", overflow="fold")
    table.add_column("Type", no_wrap=True)
    table.add_column("Year", no_wrap=True)
    table.add_column("Rating", justify="right", no_wrap=True)
    table.add_column("ID", style="dim", no_wrap=True)
    for position, item in enumerate(items, start=1):
        table.add_row(
            str(position),
            item.title,
            item.media_type or "-",
            item.release_year or "-",
            format_rating(item),
            str(item.id),
        )
    return table


def featured_panel(item: ResultItem) -> Panel:
    """Headline panel for the home screen's featured title."""
    body = Text()
    meta = [m for m in (item.media_type, item.release_year) if m]
    if item.rating is not None:
        meta.append(f"{item.rating:.1f}/10")
    if meta:
        body.append(" | ".join(meta) + "\n", style="italic cyan")
    body.append(truncate_text(item.overview, 300) or "No overview available.")
    return Panel(body, title=f"[bold]{item.title}[/bold]", subtitle=item.route)


def _facts(details: Details) -> list[tuple[str, str]]:
    info = details.info
    facts: list[tuple[str, str]] = []
    if details.media_type == "person":
        for label, key in (
            ("Known for", "known_for_department"),
            ("Born", "birthday"),
            ("Died", "deathday"),
            ("Birthplace", "place_of_birth"),
        ):
            if info.get(key):
                facts.append((label, str(info[key])))
        if details.profile_images:
            facts.append(("Photos", str(details.profile_images)))
    else:
        date = info.get("release_date") or info.get("first_air_date")
        if date:
            facts.append(("Released", str(date)))
        if info.get("runtime"):
            facts.append(("Runtime", f"{info['runtime']} min"))
        if info.get("number_of_seasons"):
            episodes = info.get("number_of_episodes", "?")
            facts.append(("Seasons", f"{info['number_of_seasons']} ({episodes} episodes)"))
        if details.genres:
            facts.append(("Genres", ", ".join(details.genres)))
        if info.get("vote_average") is not None:
            votes = info.get("vote_count", 0)
            facts.append(("Rating", f"{float(info['vote_average']):.1f}/10 ({votes} votes)"))
        if details.translations:
            facts.append(("Languages", truncate_text(", ".join(details.translations), 120)))
        streaming = details.provider_names("flatrate")
        if streaming:
            facts.append(("Streaming", ", ".join(streaming)))
    if details.trailer_url:
        facts.append(("Trailer", details.trailer_url))
    if details.imdb_url:
        facts.append(("IMDb", details.imdb_url))
    return facts


def _related_table(title: str, items: tuple[ResultItem, ...], limit: int) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", expand=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Type", no_wrap=True)
    table.add_column("Year", no_wrap=True)
    table.add_column("Rating", justify="right", no_wrap=True)
    for item in items[:limit]:
        table.add_row(
            item.title, item.media_type or "-", item.release_year or "-", format_rating(item)
        )
    return table


def details_renderables(details: Details) -> list[RenderableType]:
    """Header panel, facts, then credits and related titles."""
    info = details.info
    header = Text()
    tagline = info.get("tagline")
    if tagline:
        header.append(f"{tagline}\n\n", style="italic")
    overview = info.get("overview") or info.get("biography") or ""
    header.append(overview or "No overview available.")
    renderables: list[RenderableType] = [
        Panel(header, title=f"[bold]{details.title}[/bold]", subtitle=details.route)
    ]

    facts = _facts(details)
    if facts:
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold cyan", no_wrap=True)
        grid.add_column()
        for label, value in facts:
            grid.add_row(label, value)
        renderables.append(grid)

    if details.credits:
        credits = Table(
            title="Known for" if details.media_type == "person" else "Cast",
            show_header=True,
            header_style="bold",
            expand=True,
        )
        credits.add_column("Name", overflow="fold")
        credits.add_column("Role", overflow="fold")
        for item in details.credits[:CREDITS_LIMIT]:
            payload = item.payload
            role = payload.get("character")
            if not role and payload.get("roles"):
                role = payload["roles"][0].get("character")
            credits.add_row(item.title, str(role or "-"))
        renderables.append(credits)

    for title, items in (("Recommended", details.recommendations), ("Similar", details.similar)):
        if items:
            renderables.append(_related_table(title, items, RELATED_LIMIT))
    return renderables
