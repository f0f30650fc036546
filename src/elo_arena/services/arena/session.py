"""Comparison session: the stateful controller behind a ranking run."""

from __future__ import annotations

import math
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

import structlog

from elo_arena.core.errors import (
    InvalidPairError,
    NoHistoryError,
    NonFiniteRatingError,
    PersistenceFailureError,
    ReferencedItemMissingError,
)
from elo_arena.models import ComparisonRecord, Item
from elo_arena.ranking import EloEngine
from elo_arena.services.library import ranked
from elo_arena.services.storage import Storage

from .pairing import RandomSource, create_rng, select_pair

logger = structlog.get_logger()

Clock = Callable[[], datetime]
UndoMode = Literal["reverse", "snapshot"]


def utc_now() -> datetime:
    return datetime.now(UTC)


def _item_id(item: Item | str) -> str:
    return item if isinstance(item, str) else item.id


@dataclass(frozen=True)
class SessionState:
    """Snapshot returned to the caller after every operation.

    Attributes:
        items: Detached copies of all items.
        active_pair: The two items to present next, or None when fewer than
            two items exist.
        total_comparisons: Number of comparisons in history.
        persistence_error: Set when the storage collaborator failed during
            the operation. In-memory state is still authoritative.
    """

    items: tuple[Item, ...]
    active_pair: tuple[Item, Item] | None
    total_comparisons: int
    persistence_error: PersistenceFailureError | None = None

    @property
    def is_empty(self) -> bool:
        return self.active_pair is None


class SessionObserver:
    """Receives session notifications. Override the hooks you need."""

    def items_changed(self, items: list[Item]) -> None:
        pass

    def comparison_recorded(self, record: ComparisonRecord, total: int) -> None:
        pass

    def undone(self, record: ComparisonRecord) -> None:
        pass

    def persistence_failed(self, error: PersistenceFailureError) -> None:
        pass


class ComparisonSession:
    """Owns the item collection and history of one ranking run.

    Selects pairs, applies decisions through the Elo engine, supports undo of
    the most recent decision, and writes every change through the storage
    collaborator. Operations are serialized with a lock, so a second
    ``decide`` against the same pair waits and then fails with
    ``InvalidPairError`` instead of double-counting.
    """

    def __init__(
        self,
        storage: Storage,
        items: Iterable[Item] = (),
        history: Iterable[ComparisonRecord] = (),
        *,
        engine: EloEngine | None = None,
        rng: RandomSource | None = None,
        clock: Clock | None = None,
        observers: Sequence[SessionObserver] = (),
        undo_mode: UndoMode = "reverse",
    ) -> None:
        """Initialize a comparison session.

        Args:
            storage: Persistence collaborator.
            items: Starting items. Ids must be unique.
            history: Previously recorded comparisons, oldest first.
            engine: Elo engine. Defaults to K=32.
            rng: Uniform random source for pair selection.
            clock: Timestamp source for new records.
            observers: Notification receivers.
            undo_mode: "reverse" replays a reverse match, "snapshot" restores
                the ratings stored in the record.
        """
        self.storage = storage
        self.engine = engine or EloEngine()
        self.undo_mode = undo_mode
        self._rng = rng or create_rng()
        self._clock = clock or utc_now
        self._observers = list(observers)
        self._lock = threading.RLock()

        self._items: dict[str, Item] = {}
        self._insert_items(items)
        self._history = [record.clone() for record in history]
        self._active_pair: tuple[str, str] | None = None
        self.select_pair()

    @classmethod
    def from_storage(cls, storage: Storage, **kwargs) -> ComparisonSession:
        """Resume a session from whatever the storage holds.

        Raises:
            PersistenceFailureError: If the storage cannot be read.
        """
        try:
            items = storage.load_items()
            history = storage.load_history()
        except Exception as e:
            raise PersistenceFailureError("load", e) from e
        logger.info("session_loaded", items=len(items), comparisons=len(history))
        return cls(storage, items, history, **kwargs)

    # ==================== Read access ====================

    @property
    def items(self) -> list[Item]:
        with self._lock:
            return [item.clone() for item in self._items.values()]

    @property
    def history(self) -> list[ComparisonRecord]:
        with self._lock:
            return [record.clone() for record in self._history]

    @property
    def active_pair(self) -> tuple[Item, Item] | None:
        with self._lock:
            if self._active_pair is None:
                return None
            first, second = self._active_pair
            return self._items[first].clone(), self._items[second].clone()

    @property
    def total_comparisons(self) -> int:
        with self._lock:
            return len(self._history)

    @property
    def state(self) -> SessionState:
        return self._state()

    def ranked_items(self) -> list[Item]:
        """Items sorted by rating descending, ties broken by name."""
        return ranked(self.items)

    def add_observer(self, observer: SessionObserver) -> None:
        self._observers.append(observer)

    # ==================== Operations ====================

    def select_pair(self) -> tuple[Item, Item] | None:
        """Choose a fresh active pair uniformly at random.

        Returns:
            The new active pair, or None (and no active pair) when fewer than
            two items exist.
        """
        with self._lock:
            pair = select_pair(list(self._items), self._rng)
            self._active_pair = pair
            return self.active_pair

    def decide(self, winner: Item | str, loser: Item | str) -> SessionState:
        """Record that ``winner`` beat ``loser`` and present a new pair.

        Args:
            winner: Winning item (or its id); must be in the active pair.
            loser: Losing item (or its id); must be the other active item.

        Returns:
            Updated session state.

        Raises:
            InvalidPairError: If the two items are not the active pair.
            NonFiniteRatingError: If either rating is NaN or infinite.
        """
        winner_id, loser_id = _item_id(winner), _item_id(loser)

        with self._lock:
            self._check_active_pair(winner_id, loser_id)
            winner_item = self._items[winner_id]
            loser_item = self._items[loser_id]
            self._check_finite(winner_item, loser_item)

            new_winner, new_loser = self.engine.apply_outcome(
                winner_item.rating, loser_item.rating
            )
            record = ComparisonRecord(
                sequence=len(self._history),
                winner_id=winner_id,
                loser_id=loser_id,
                winner_rating_before=winner_item.rating,
                loser_rating_before=loser_item.rating,
                timestamp=self._clock(),
            )

            winner_item.rating = new_winner
            loser_item.rating = new_loser
            winner_item.match_count += 1
            loser_item.match_count += 1
            self._history.append(record)

            logger.info(
                "comparison_recorded",
                winner=winner_id,
                loser=loser_id,
                winner_rating=new_winner,
                loser_rating=new_loser,
                total=len(self._history),
            )

            error = self._persist()
            self.select_pair()
            state = self._state(error)

            self._notify_items_changed()
            for observer in self._observers:
                observer.comparison_recorded(record.clone(), len(self._history))

        return state

    def decide_side(self, side: Literal["A", "B"]) -> SessionState:
        """Record a decision by the side of the active pair that won."""
        with self._lock:
            if self._active_pair is None:
                raise InvalidPairError("there is no active pair")
            first, second = self._active_pair
            if side == "A":
                return self.decide(first, second)
            return self.decide(second, first)

    def skip(self) -> SessionState:
        """Discard the active pair without rating changes and pick another."""
        with self._lock:
            self.select_pair()
            logger.debug("pair_skipped")
            return self._state()

    def undo(self) -> SessionState:
        """Revert the most recent decision and re-present its pair.

        With ``undo_mode="reverse"`` ratings are restored by replaying the
        comparison with winner and loser swapped. Rounding makes that
        approximate: ratings land within one update step of their previous
        values. ``undo_mode="snapshot"`` restores them exactly. Match counts
        are always decremented, never below zero.

        Returns:
            Updated session state with the undone pair active.

        Raises:
            NoHistoryError: If nothing has been recorded.
            ReferencedItemMissingError: If an item of the last comparison was
                removed. The record is dropped from history.
            NonFiniteRatingError: If either rating is NaN or infinite.
        """
        with self._lock:
            if not self._history:
                raise NoHistoryError()

            record = self._history[-1]
            missing = [
                item_id
                for item_id in (record.winner_id, record.loser_id)
                if item_id not in self._items
            ]
            if missing:
                self._history.pop()
                logger.warning("undo_item_missing", record=record.id, missing=missing)
                self._persist()
                raise ReferencedItemMissingError(record.clone(), missing)

            winner_item = self._items[record.winner_id]
            loser_item = self._items[record.loser_id]
            use_snapshot = (
                self.undo_mode == "snapshot"
                and record.winner_rating_before is not None
                and record.loser_rating_before is not None
            )
            if not use_snapshot:
                self._check_finite(winner_item, loser_item)

            self._history.pop()
            if use_snapshot:
                winner_item.rating = record.winner_rating_before
                loser_item.rating = record.loser_rating_before
            else:
                winner_item.rating, loser_item.rating = self.engine.reverse_outcome(
                    winner_item.rating, loser_item.rating
                )
            winner_item.match_count = max(0, winner_item.match_count - 1)
            loser_item.match_count = max(0, loser_item.match_count - 1)

            logger.info(
                "comparison_undone",
                winner=record.winner_id,
                loser=record.loser_id,
                mode="snapshot" if use_snapshot else "reverse",
                total=len(self._history),
            )

            error = self._persist()
            self._active_pair = (record.winner_id, record.loser_id)
            state = self._state(error)

            self._notify_items_changed()
            for observer in self._observers:
                observer.undone(record.clone())

        return state

    def reset(self) -> SessionState:
        """Remove all items and history, leaving an empty session."""
        with self._lock:
            self._items.clear()
            self._history.clear()
            self._active_pair = None

            error = None
            try:
                self.storage.clear()
            except Exception as e:
                error = self._persistence_failed("clear", e)

            logger.info("session_reset")
            self._notify_items_changed()
            return self._state(error)

    def add_items(self, items: Iterable[Item]) -> SessionState:
        """Add new items and persist them.

        Raises:
            ValueError: If an item id is already present.
        """
        with self._lock:
            added = self._insert_items(items)
            logger.info("items_added", count=added, total=len(self._items))

            error = self._persist()
            if self._active_pair is None:
                self.select_pair()

            self._notify_items_changed()
            return self._state(error)

    def remove_item(self, item_id: str) -> SessionState:
        """Delete one item. History referring to it is kept as is.

        Raises:
            KeyError: If no item has this id.
        """
        with self._lock:
            if item_id not in self._items:
                msg = f"Unknown item: {item_id}"
                raise KeyError(msg)
            del self._items[item_id]
            logger.info("item_removed", item=item_id)

            error = self._persist()
            if self._active_pair is not None and item_id in self._active_pair:
                self.select_pair()

            self._notify_items_changed()
            return self._state(error)

    def replace_items(self, items: Iterable[Item]) -> SessionState:
        """Update existing items in place (e.g. new display refs).

        Ids not already present are ignored. Ratings and match counts are
        taken from the given items.
        """
        with self._lock:
            updated = 0
            for item in items:
                if item.id in self._items:
                    self._items[item.id] = item.clone()
                    updated += 1
            logger.info("items_replaced", count=updated)

            error = self._persist()
            self._notify_items_changed()
            return self._state(error)

    def restore(
        self, items: Iterable[Item], history: Iterable[ComparisonRecord]
    ) -> SessionState:
        """Replace all items and history, e.g. from a backup file.

        Nothing changes if the incoming items contain duplicate ids.

        Raises:
            ValueError: If an item id appears more than once.
        """
        with self._lock:
            incoming: dict[str, Item] = {}
            for item in items:
                if item.id in incoming:
                    msg = f"Duplicate item id: {item.id}"
                    raise ValueError(msg)
                incoming[item.id] = item.clone()
            records = sorted((record.clone() for record in history), key=lambda r: r.sequence)

            self._items = incoming
            self._history = records
            logger.info("session_restored", items=len(incoming), comparisons=len(records))

            error = self._persist()
            self.select_pair()
            self._notify_items_changed()
            return self._state(error)

    # ==================== Internals ====================

    def _insert_items(self, items: Iterable[Item]) -> int:
        incoming = [item.clone() for item in items]
        seen: set[str] = set()
        for item in incoming:
            if item.id in self._items or item.id in seen:
                msg = f"Duplicate item id: {item.id}"
                raise ValueError(msg)
            seen.add(item.id)
        for item in incoming:
            self._items[item.id] = item
        return len(incoming)

    def _check_active_pair(self, winner_id: str, loser_id: str) -> None:
        if winner_id == loser_id:
            raise InvalidPairError("winner and loser are the same item", winner_id, loser_id)
        if self._active_pair is None:
            raise InvalidPairError("there is no active pair", winner_id, loser_id)
        if {winner_id, loser_id} != set(self._active_pair):
            raise InvalidPairError("not the active pair", winner_id, loser_id)
        for item_id in (winner_id, loser_id):
            if item_id not in self._items:
                raise InvalidPairError(f"{item_id} is not in the collection", winner_id, loser_id)

    @staticmethod
    def _check_finite(*items: Item) -> None:
        for item in items:
            if not math.isfinite(item.rating):
                raise NonFiniteRatingError(item.id, item.rating)

    def _persist(self) -> PersistenceFailureError | None:
        """Write items then history; report but never raise storage failures.

        Both snapshots are always handed to the storage, even when the first
        write fails, so a buffered storage never holds items without the
        matching history. The first failure is reported.
        """
        first_error: Exception | None = None
        for save, snapshot in (
            (self.storage.save_items, list(self._items.values())),
            (self.storage.save_history, self._history),
        ):
            try:
                save(snapshot)
            except Exception as e:
                first_error = first_error or e
        if first_error is not None:
            return self._persistence_failed("save", first_error)
        return None

    def _persistence_failed(self, operation: str, cause: Exception) -> PersistenceFailureError:
        error = PersistenceFailureError(operation, cause)
        logger.error("persistence_failed", operation=operation, error=str(cause))
        for observer in self._observers:
            observer.persistence_failed(error)
        return error

    def _notify_items_changed(self) -> None:
        if not self._observers:
            return
        items = [item.clone() for item in self._items.values()]
        for observer in self._observers:
            observer.items_changed(items)

    def _state(self, error: PersistenceFailureError | None = None) -> SessionState:
        with self._lock:
            return SessionState(
                items=tuple(item.clone() for item in self._items.values()),
                active_pair=self.active_pair,
                total_comparisons=len(self._history),
                persistence_error=error,
            )
