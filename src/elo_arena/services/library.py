"""Item collection helpers: creation, re-linking display refs, ordering."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

import structlog

from elo_arena.core.config import DEFAULT_RATING
from elo_arena.models import Item

logger = structlog.get_logger()


def create_items(
    display_refs: Iterable[str | Path],
    initial_rating: float = DEFAULT_RATING,
) -> list[Item]:
    """Create one fresh item per display reference.

    Args:
        display_refs: File paths or URLs.
        initial_rating: Starting rating for every item.

    Returns:
        New items with unique ids and zero matches.
    """
    items = []
    for ref in display_refs:
        ref_str = str(ref)
        items.append(
            Item(
                name=Path(ref_str).name or ref_str,
                display_ref=ref_str,
                rating=initial_rating,
                match_count=0,
            )
        )
    return items


def attach_display_refs(items: Sequence[Item], paths: Iterable[str | Path]) -> list[Item]:
    """Re-link items to files that share their name.

    Items restored from storage may point at files that moved. Any item whose
    name matches the file name of one of ``paths`` gets that path as its new
    display ref; other items are returned unchanged.

    Returns:
        Detached copies of all items, updated where a match was found.
    """
    by_name = {Path(p).name: str(p) for p in paths}
    updated = []
    relinked = 0
    for item in items:
        copy = item.clone()
        match = by_name.get(item.name)
        if match is not None:
            copy.display_ref = match
            relinked += 1
        updated.append(copy)
    logger.info("display_refs_attached", relinked=relinked, total=len(updated))
    return updated


def missing_display_refs(items: Iterable[Item]) -> list[Item]:
    """Items whose display ref is unset or does not point to an existing file."""
    return [
        item
        for item in items
        if not item.display_ref or not Path(item.display_ref).is_file()
    ]


def ranked(items: Iterable[Item]) -> list[Item]:
    """Sort items by rating descending, ties broken by name."""
    return sorted(items, key=lambda item: (-item.rating, item.name))
