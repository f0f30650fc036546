"""Storage contract consumed by the comparison session."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from elo_arena.models import ComparisonRecord, Item


@runtime_checkable
class Storage(Protocol):
    """Persistence collaborator for items and comparison history.

    Implementations receive full snapshots on every save and may defer or
    coalesce writes, but must apply them in the order they were made and
    must discard pending writes on ``clear``.
    """

    def load_items(self) -> list[Item]:
        """Return all persisted items."""
        ...

    def save_items(self, items: Sequence[Item]) -> None:
        """Replace the persisted item set."""
        ...

    def load_history(self) -> list[ComparisonRecord]:
        """Return persisted comparisons, oldest first."""
        ...

    def save_history(self, history: Sequence[ComparisonRecord]) -> None:
        """Replace the persisted comparison history."""
        ...

    def clear(self) -> None:
        """Remove all items and history."""
        ...
