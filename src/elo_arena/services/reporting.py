"""Leaderboard reports and ranked file exports."""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Literal

import structlog
from tabulate import tabulate

from elo_arena.models import Item
from elo_arena.ranking import round_half_up
from elo_arena.services.library import ranked

logger = structlog.get_logger()

ExportFormat = Literal["elo", "rank"]
EXPORT_FORMATS: tuple[ExportFormat, ...] = ("rank", "elo")


def leaderboard_rows(items: Iterable[Item]) -> list[tuple[int, str, int, int]]:
    """Build (rank, name, rating, matches) rows, best first."""
    return [
        (position, item.name, int(round_half_up(item.rating)), item.match_count)
        for position, item in enumerate(ranked(items), start=1)
    ]


def leaderboard_markdown(items: Iterable[Item], title: str = "Rankings") -> str:
    """Render the leaderboard as a markdown table.

    Args:
        items: Items to rank.
        title: Report title (markdown heading).

    Returns:
        Markdown report content.
    """
    rows = leaderboard_rows(items)
    lines = [f"# {title}", ""]
    if not rows:
        lines.append("No items have been ranked yet.")
    else:
        lines.append(tabulate(rows, headers=("Rank", "Name", "Elo", "Matches"), tablefmt="github"))
    return "\n".join(lines)


def export_filename(item: Item, rank: int, fmt: ExportFormat) -> str:
    """Prefix an item's name with its rating or its 1-based rank."""
    prefix = int(round_half_up(item.rating)) if fmt == "elo" else rank
    return f"{prefix}_{item.name}"


def export_ranked_files(
    items: Iterable[Item],
    dest: Path,
    fmt: ExportFormat = "rank",
) -> tuple[list[Path], list[Item]]:
    """Copy each item's file into ``dest`` under its ranked name.

    Args:
        items: Items to export.
        dest: Output directory, created if needed.
        fmt: "rank" or "elo" filename prefix.

    Returns:
        Tuple of (written_paths, skipped_items). Items whose display ref is
        not an existing file are skipped.
    """
    dest.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    skipped: list[Item] = []

    for rank, item in enumerate(ranked(items), start=1):
        source = Path(item.display_ref) if item.display_ref else None
        if source is None or not source.is_file():
            logger.warning("export_skipped", item=item.id, display_ref=item.display_ref)
            skipped.append(item)
            continue
        target = dest / export_filename(item, rank, fmt)
        shutil.copyfile(source, target)
        written.append(target)

    logger.info("ranked_export", written=len(written), skipped=len(skipped), format=fmt)
    return written, skipped
