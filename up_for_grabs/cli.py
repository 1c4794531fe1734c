"""
Command-line interface for Up For Grabs.
"""

import asyncio
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.table import Table

from up_for_grabs.cache import InMemoryCacheStore, JsonFileCacheStore
from up_for_grabs.config import (
    get_freshness_window,
    set_cache_dir,
    set_freshness_window,
    set_verify_ssl,
)
from up_for_grabs.errors import IssueCountError
from up_for_grabs.http_client import close_http_client
from up_for_grabs.issue_count import FetchResult, FetchState, IssueCountFetcher

# --- Typer App ---
app = typer.Typer()
console = Console()

_STATE_NOTES = {
    FetchState.CACHE_FRESH: "Using cached count (still fresh).",
    FetchState.CACHE_STALE_CONDITIONAL: "Cache expired, revalidating with ETag...",
    FetchState.CACHE_STALE_UNCONDITIONAL: "No usable cache entry, querying GitHub...",
    FetchState.RESPONSE_NOT_MODIFIED: "GitHub reported no changes (304).",
    FetchState.RESPONSE_OK: "Received fresh issue list, cache updated.",
}


async def _run_fetch(fetcher: IssueCountFetcher, project: str, label: str) -> FetchResult:
    try:
        return await fetcher.fetch(project, label)
    finally:
        await close_http_client()


@app.command()
def issue_count(
    project: str = typer.Argument(
        ...,
        help="GitHub repository in 'owner/repo' form.",
    ),
    label: str = typer.Option(
        "up-for-grabs",
        "--label",
        "-l",
        help="Issue label to count.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show how the count was obtained (cache hit, revalidation, fresh fetch).",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    cache_dir: Path | None = typer.Option(
        None,
        "--cache-dir",
        help="Cache directory path (default: ~/.cache/up-for-grabs).",
    ),
    freshness_seconds: int | None = typer.Option(
        None,
        "--freshness-seconds",
        help="Maximum age of a cached count in seconds (default: 86400 = 24 hours).",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Ignore and do not update the on-disk cache.",
    ),
):
    """Print the number of open issues of a project carrying a label."""
    if cache_dir:
        set_cache_dir(cache_dir)
    if freshness_seconds is not None:
        set_freshness_window(freshness_seconds)
    set_verify_ssl(not insecure)

    store = InMemoryCacheStore() if no_cache else JsonFileCacheStore()
    fetcher = IssueCountFetcher(store)

    try:
        result = asyncio.run(_run_fetch(fetcher, project, label))
    except IssueCountError as e:
        console.print(f"[yellow]⚠️  {e}[/yellow]")
        raise typer.Exit(code=1) from None
    except httpx.RequestError as e:
        console.print(f"[yellow]⚠️  Unable to reach GitHub: {e}[/yellow]")
        raise typer.Exit(code=1) from None

    if verbose:
        for state in result.states:
            note = _STATE_NOTES.get(state)
            if note:
                console.print(f"[dim]{note}[/dim]")

    console.print(
        f"[bold cyan]{project}[/bold cyan] has [bold]{result.count}[/bold] "
        f"open issue(s) labelled '{label}'."
    )


@app.command()
def cache_stats(
    cache_dir: Path | None = typer.Option(
        None,
        "--cache-dir",
        help="Cache directory path (default: ~/.cache/up-for-grabs).",
    ),
):
    """Display cache statistics."""
    if cache_dir:
        set_cache_dir(cache_dir)

    store = JsonFileCacheStore()
    if not store.path.exists():
        console.print(f"[yellow]Cache file does not exist: {store.path}[/yellow]")
        return

    freshness_window = get_freshness_window()
    stats = store.stats(freshness_window)

    console.print("[bold cyan]Cache Statistics[/bold cyan]")
    console.print(f"  File: {store.path}")
    console.print(f"  Total entries: {stats['total']}")
    console.print(f"  Fresh entries: [green]{stats['fresh']}[/green]")
    console.print(f"  Stale entries: [yellow]{stats['stale']}[/yellow]")

    entries = store.entries()
    if entries:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Project", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Cached At", justify="left")
        table.add_column("ETag", justify="center")

        for project, entry in sorted(entries.items()):
            table.add_row(
                project,
                str(entry.count),
                entry.date.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
                "yes" if entry.etag else "no",
            )

        console.print(table)


@app.command()
def clear_cache(
    cache_dir: Path | None = typer.Option(
        None,
        "--cache-dir",
        help="Cache directory path (default: ~/.cache/up-for-grabs).",
    ),
):
    """Remove all cached issue counts."""
    if cache_dir:
        set_cache_dir(cache_dir)

    cleared = JsonFileCacheStore().clear()
    console.print(f"[green]✨ Cleared {cleared} cached entr{'y' if cleared == 1 else 'ies'}.[/green]")


if __name__ == "__main__":
    app()
