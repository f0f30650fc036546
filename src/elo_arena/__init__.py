"""Elo Arena.

Rank a collection of items by repeated pairwise comparison, turning each
choice into an Elo rating update.
"""

from elo_arena.models import ComparisonRecord, Item
from elo_arena.ranking import EloEngine, apply_outcome, expected_score
from elo_arena.services.arena import ComparisonSession, SessionObserver, SessionState

__version__ = "0.1.0"
__all__ = [
    "ComparisonRecord",
    "ComparisonSession",
    "EloEngine",
    "Item",
    "SessionObserver",
    "SessionState",
    "__version__",
    "apply_outcome",
    "expected_score",
]
