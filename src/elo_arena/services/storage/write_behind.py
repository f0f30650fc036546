"""Deferred, coalescing writes in front of another storage."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Literal

import structlog

from elo_arena.models import ComparisonRecord, Item

from .base import Storage

logger = structlog.get_logger()

WriteKind = Literal["items", "history"]


class WriteBehindStorage:
    """Buffer saves and apply them to an inner storage on ``flush``.

    Every save is a full snapshot, so a newer snapshot of the same kind
    replaces a pending one while keeping its place in the queue. Flushing
    writes the pending snapshots in the order their kinds were first queued.
    ``clear`` discards everything still pending so a stale snapshot cannot
    resurrect cleared data.
    """

    def __init__(self, inner: Storage, autoflush_after: int | None = None) -> None:
        """Initialize write-behind storage.

        Args:
            inner: Storage that receives the writes.
            autoflush_after: Flush automatically once this many saves were
                queued since the last flush. None means only explicit flushes.
        """
        self.inner = inner
        self.autoflush_after = autoflush_after
        self._pending: dict[WriteKind, list] = {}
        self._queued_since_flush = 0
        self._lock = threading.RLock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def _enqueue(self, kind: WriteKind, snapshot: list) -> None:
        with self._lock:
            self._pending[kind] = snapshot
            self._queued_since_flush += 1
            should_flush = (
                self.autoflush_after is not None
                and self._queued_since_flush >= self.autoflush_after
            )
        if should_flush:
            self.flush()

    def save_items(self, items: Sequence[Item]) -> None:
        self._enqueue("items", [item.clone() for item in items])

    def save_history(self, history: Sequence[ComparisonRecord]) -> None:
        self._enqueue("history", [record.clone() for record in history])

    def flush(self) -> None:
        """Write all pending snapshots to the inner storage.

        Raises:
            Exception: Whatever the inner storage raised. Snapshots not yet
                written stay pending for the next flush.
        """
        with self._lock:
            while self._pending:
                kind = next(iter(self._pending))
                snapshot = self._pending[kind]
                if kind == "items":
                    self.inner.save_items(snapshot)
                else:
                    self.inner.save_history(snapshot)
                del self._pending[kind]
            self._queued_since_flush = 0

    def load_items(self) -> list[Item]:
        self.flush()
        return self.inner.load_items()

    def load_history(self) -> list[ComparisonRecord]:
        self.flush()
        return self.inner.load_history()

    def clear(self) -> None:
        with self._lock:
            dropped = len(self._pending)
            self._pending.clear()
            self._queued_since_flush = 0
            self.inner.clear()
        if dropped:
            logger.debug("pending_writes_dropped", count=dropped)
