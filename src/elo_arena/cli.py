"""CLI for Elo Arena."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import pydantic
import structlog
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from elo_arena import __version__
from elo_arena.core.config import ArenaConfig, load_config, resolve_config
from elo_arena.core.errors import (
    ArenaError,
    BackupFormatError,
    ConfigurationError,
    NoHistoryError,
    PersistenceFailureError,
    ReferencedItemMissingError,
)
from elo_arena.models import ComparisonRecord, Item
from elo_arena.ranking import create_rating_engine
from elo_arena.services.arena import (
    ComparisonSession,
    SessionObserver,
    SessionState,
    create_rng,
)
from elo_arena.services.library import attach_display_refs, create_items, missing_display_refs
from elo_arena.services.reporting import (
    EXPORT_FORMATS,
    export_ranked_files,
    leaderboard_markdown,
    leaderboard_rows,
)
from elo_arena.services.storage import (
    DBStorage,
    Storage,
    WriteBehindStorage,
    create_storage,
    read_backup,
    write_backup,
)

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="elo-arena",
    help="Elo Arena - Rank items by pairwise comparison with Elo ratings",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config YAML file (or set ELO_ARENA_CONFIG)"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]


class ConsoleObserver(SessionObserver):
    """Print a message at every milestone comparison count."""

    def __init__(self, milestone_every: int) -> None:
        self.milestone_every = milestone_every

    def comparison_recorded(self, record: ComparisonRecord, total: int) -> None:
        if total % self.milestone_every == 0:
            console.print(f"[cyan]You've completed {total} comparisons![/cyan]")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"elo-arena v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Elo Arena CLI."""


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(config_path: Path | None) -> ArenaConfig:
    load_dotenv()
    try:
        return resolve_config(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except pydantic.ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e


@contextmanager
def _open_session(
    config: ArenaConfig,
    buffered: bool = False,
    observers: tuple[SessionObserver, ...] = (),
) -> Iterator[ComparisonSession]:
    """Open the configured storage and resume a session from it."""
    backend = create_storage(config)
    storage: Storage = backend
    if buffered:
        storage = WriteBehindStorage(backend, autoflush_after=config.storage.flush_every)

    try:
        session = ComparisonSession.from_storage(
            storage,
            engine=create_rating_engine(config),
            rng=create_rng(config.seed),
            observers=observers,
            undo_mode=config.ranking.undo_mode,
        )
    except PersistenceFailureError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e

    try:
        yield session
    finally:
        if isinstance(storage, WriteBehindStorage):
            try:
                storage.flush()
            except Exception as e:
                console.print(f"[red]Failed to save progress:[/red] {e}")
        if isinstance(backend, DBStorage):
            backend.close()


def _report_state(state: SessionState) -> None:
    if state.persistence_error is not None:
        console.print(f"[red]{state.persistence_error}")


def _pair_table(first: Item, second: Item) -> Table:
    table = Table(title="Which do you prefer?", show_header=True)
    table.add_column("Key", justify="center", style="bold")
    table.add_column("Name")
    table.add_column("Elo", justify="right")
    table.add_column("Matches", justify="right")
    for key, item in (("1", first), ("2", second)):
        table.add_row(key, item.name, f"{item.rating:.0f}", str(item.match_count))
    return table


@app.command()
def add(
    paths: Annotated[list[Path], typer.Argument(help="Files to add to the arena")],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Add files as new items with the initial rating."""
    _configure_logging(verbose)
    config = _load_config(config_path)

    files = [p for p in paths if p.is_file()]
    for skipped in sorted(set(paths) - set(files)):
        console.print(f"[yellow]Skipping (not a file):[/yellow] {skipped}")
    if not files:
        console.print("[red]No files to add.[/red]")
        raise typer.Exit(1)

    with _open_session(config) as session:
        items = create_items(files, initial_rating=config.ranking.initial_rating)
        state = session.add_items(items)
        _report_state(state)
        console.print(f"[green]Added {len(items)} item(s).[/green] Total: {len(state.items)}")


@app.command()
def compare(
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Compare pairs interactively: 1/2 choose, s skip, u undo, q quit."""
    _configure_logging(verbose)
    config = _load_config(config_path)
    observer = ConsoleObserver(config.milestone_every)

    with _open_session(config, buffered=True, observers=(observer,)) as session:
        missing = missing_display_refs(session.items)
        if missing:
            console.print("[red]Some items have no file attached:[/red]")
            for item in missing:
                console.print(f"  {item.name} ({item.display_ref})")
            console.print("Re-attach them with [bold]elo-arena relink PATHS...[/bold]")
            raise typer.Exit(1)

        while True:
            pair = session.active_pair
            if pair is None:
                console.print("Please add at least 2 items to begin comparing.")
                return

            console.print(_pair_table(*pair))
            choice = typer.prompt("Choice [1/2/s/u/q]").strip().lower()

            try:
                if choice == "1":
                    state = session.decide_side("A")
                elif choice == "2":
                    state = session.decide_side("B")
                elif choice == "s":
                    state = session.skip()
                elif choice == "u":
                    state = session.undo()
                    console.print("[yellow]Last comparison undone.[/yellow]")
                elif choice == "q":
                    break
                else:
                    console.print("[yellow]Press 1, 2, s, u or q.[/yellow]")
                    continue
            except NoHistoryError:
                console.print("[yellow]Nothing to undo.[/yellow]")
                continue
            except ReferencedItemMissingError as e:
                console.print(f"[yellow]{e}")
                continue
            except ArenaError as e:
                console.print(f"[red]{e}")
                continue

            _report_state(state)

        console.print(f"{session.total_comparisons} comparison(s) recorded.")


@app.command()
def rankings(
    markdown: Annotated[bool, typer.Option("--markdown", help="Print a markdown table")] = False,
    config_path: ConfigOption = None,
) -> None:
    """Show items ranked by rating."""
    config = _load_config(config_path)
    with _open_session(config) as session:
        items = session.items

    if markdown:
        console.print(leaderboard_markdown(items), markup=False)
        return

    if not items:
        console.print("No items have been ranked yet.")
        return

    table = Table(title="Rankings")
    table.add_column("Rank", justify="right")
    table.add_column("Name")
    table.add_column("Elo", justify="right")
    table.add_column("Matches", justify="right")
    for rank, name, rating, matches in leaderboard_rows(items):
        table.add_row(str(rank), name, str(rating), str(matches))
    console.print(table)


@app.command()
def export(
    dest: Annotated[Path, typer.Argument(help="Directory to copy ranked files into")],
    fmt: Annotated[
        str, typer.Option("--format", "-f", help="Filename prefix: rank or elo")
    ] = "rank",
    config_path: ConfigOption = None,
) -> None:
    """Copy item files into DEST, prefixed with their rank or rating."""
    if fmt not in EXPORT_FORMATS:
        console.print(f"[red]Unknown format:[/red] {fmt} (use rank or elo)")
        raise typer.Exit(2)
    config = _load_config(config_path)
    with _open_session(config) as session:
        items = session.items

    if not items:
        console.print("[red]No items to export.[/red]")
        raise typer.Exit(1)

    written, skipped = export_ranked_files(items, dest, fmt)
    console.print(f"[green]Exported {len(written)} file(s) to {dest}[/green]")
    for item in skipped:
        console.print(f"[yellow]Skipped (file missing):[/yellow] {item.name}")


@app.command()
def relink(
    paths: Annotated[list[Path], typer.Argument(help="Files to match to items by name")],
    config_path: ConfigOption = None,
) -> None:
    """Re-attach items to files with the same file name."""
    config = _load_config(config_path)
    with _open_session(config) as session:
        updated = attach_display_refs(session.items, [p for p in paths if p.is_file()])
        state = session.replace_items(updated)
        _report_state(state)
        still_missing = missing_display_refs(state.items)

    console.print(f"[green]Items linked:[/green] {len(state.items) - len(still_missing)}")
    if still_missing:
        console.print(f"[yellow]Still missing files:[/yellow] {len(still_missing)}")


@app.command()
def backup(
    dest: Annotated[Path, typer.Argument(help="JSON file to write")],
    config_path: ConfigOption = None,
) -> None:
    """Save all items and comparison history to a JSON file."""
    config = _load_config(config_path)
    with _open_session(config) as session:
        items = session.items
        history = session.history

    write_backup(dest, items, history)
    console.print(
        f"[green]Backed up {len(items)} item(s) and {len(history)} comparison(s) to {dest}[/green]"
    )


@app.command()
def restore(
    src: Annotated[Path, typer.Argument(help="JSON file written by backup")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
    config_path: ConfigOption = None,
) -> None:
    """Replace all items and history with the contents of a backup."""
    config = _load_config(config_path)
    try:
        items, history = read_backup(src)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except BackupFormatError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e

    if not yes:
        typer.confirm("Replace all items and rankings with the backup?", abort=True)

    with _open_session(config) as session:
        try:
            state = session.restore(items, history)
        except ValueError as e:
            console.print(f"[red]Invalid backup:[/red] {e}")
            raise typer.Exit(1) from e
        _report_state(state)

    console.print(
        f"[green]Restored {len(state.items)} item(s) and {state.total_comparisons} comparison(s).[/green]"
    )
    missing = missing_display_refs(state.items)
    if missing:
        console.print(
            f"[yellow]{len(missing)} item(s) have no file attached.[/yellow] "
            "Re-attach them with [bold]elo-arena relink PATHS...[/bold]"
        )


@app.command()
def reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
    config_path: ConfigOption = None,
) -> None:
    """Delete all items and comparison history."""
    config = _load_config(config_path)
    if not yes:
        typer.confirm("Reset all items and rankings? This cannot be undone.", abort=True)

    with _open_session(config) as session:
        state = session.reset()
        _report_state(state)
    console.print("[green]All items and rankings have been reset.[/green]")


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without running."""
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Initial rating: {config.ranking.initial_rating}")
        console.print(f"  K-factor: {config.ranking.k_factor}")
        console.print(f"  Undo mode: {config.ranking.undo_mode}")
        console.print(f"  Storage: {config.storage.backend} ({config.storage.db_path})")
        console.print(f"  Milestone every: {config.milestone_every}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


if __name__ == "__main__":
    app()
