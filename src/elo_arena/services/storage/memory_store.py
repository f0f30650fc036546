"""In-process storage used for tests and throwaway sessions."""

from __future__ import annotations

from collections.abc import Sequence

from elo_arena.models import ComparisonRecord, Item


class MemoryStorage:
    """Keep detached copies of items and history in memory."""

    def __init__(
        self,
        items: Sequence[Item] = (),
        history: Sequence[ComparisonRecord] = (),
    ) -> None:
        self._items = [item.clone() for item in items]
        self._history = [record.clone() for record in history]
        self.save_count = 0

    def load_items(self) -> list[Item]:
        return [item.clone() for item in self._items]

    def save_items(self, items: Sequence[Item]) -> None:
        self._items = [item.clone() for item in items]
        self.save_count += 1

    def load_history(self) -> list[ComparisonRecord]:
        return [record.clone() for record in self._history]

    def save_history(self, history: Sequence[ComparisonRecord]) -> None:
        self._history = [record.clone() for record in history]
        self.save_count += 1

    def clear(self) -> None:
        self._items = []
        self._history = []
