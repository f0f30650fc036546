"""Custom exceptions for configuration and comparison session errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from elo_arena.models import ComparisonRecord


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class ValidationError(ConfigurationError):
    """Error when configuration validation fails."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{field}'",
            f"{reason}",
        )


class ArenaError(Exception):
    """Base exception for comparison session errors."""

    label = "Arena Error"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[{self.label}] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class InvalidPairError(ArenaError):
    """Decision made against a pair that is not the active pair."""

    label = "Invalid Pair"

    def __init__(
        self, reason: str, winner_id: str | None = None, loser_id: str | None = None
    ) -> None:
        self.reason = reason
        self.winner_id = winner_id
        self.loser_id = loser_id
        subject = f" {winner_id} over {loser_id}" if winner_id and loser_id else ""
        super().__init__(
            f"Cannot record decision{subject}: {reason}",
            "Refresh the active pair before deciding.",
        )


class NoHistoryError(ArenaError):
    """Undo requested with no recorded comparisons."""

    label = "Nothing To Undo"

    def __init__(self) -> None:
        super().__init__("No comparisons have been recorded yet")


class ReferencedItemMissingError(ArenaError):
    """Undo references an item that is no longer in the collection."""

    label = "Item Missing"

    def __init__(self, record: ComparisonRecord, missing_ids: list[str]) -> None:
        self.record = record
        self.missing_ids = missing_ids
        super().__init__(
            f"Cannot undo comparison: item(s) {', '.join(missing_ids)} no longer exist",
            "The comparison was dropped from history; earlier comparisons can still be undone.",
        )


class NonFiniteRatingError(ArenaError):
    """An item carries a rating that Elo arithmetic cannot use."""

    label = "Invalid Rating"

    def __init__(self, item_id: str, rating: float) -> None:
        self.item_id = item_id
        self.rating = rating
        super().__init__(f"Item {item_id} has non-finite rating {rating!r}")


class PersistenceFailureError(ArenaError):
    """Storage collaborator failed; in-memory state stays authoritative."""

    label = "Persistence Failure"

    def __init__(self, operation: str, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(
            f"{operation} failed: {cause}",
            "Changes are kept in memory and will be written on the next save.",
        )


class BackupFormatError(ArenaError):
    """A backup file does not have the expected structure."""

    label = "Invalid Backup"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(
            f"Cannot read backup {path}: {reason}",
            "Use a file written by 'elo-arena backup'.",
        )
