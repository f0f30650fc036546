"""Elo rating calculations for Elo Arena."""

from __future__ import annotations

import math
from dataclasses import dataclass

from elo_arena.core.config import DEFAULT_K_FACTOR, DEFAULT_RATING


def round_half_up(value: float) -> float:
    """Round to the nearest integer, halves towards positive infinity.

    2.5 -> 3.0 and -2.5 -> -2.0, unlike the banker's rounding of ``round``.
    """
    return float(math.floor(value + 0.5))


def expected_score(rating_self: float, rating_opponent: float) -> float:
    """Calculate expected win probability for a player against an opponent.

    Uses the standard Elo formula:
    E = 1 / (1 + 10^((R_opponent - R_self) / 400))

    Args:
        rating_self: Rating of the player.
        rating_opponent: Rating of the opponent.

    Returns:
        Probability that the player wins, in (0.0, 1.0).
    """
    return 1.0 / (1.0 + 10 ** ((rating_opponent - rating_self) / 400))


def apply_outcome(
    rating_winner: float,
    rating_loser: float,
    k_factor: float = DEFAULT_K_FACTOR,
) -> tuple[float, float]:
    """Update Elo ratings after a decisive comparison.

    Both new ratings are rounded with ``round_half_up`` on every call, so
    repeated updates drift from continuous Elo and a reversed call does not
    necessarily restore the previous ratings exactly.

    Args:
        rating_winner: Current rating of the winner.
        rating_loser: Current rating of the loser.
        k_factor: Maximum points transferred.

    Returns:
        Tuple of (new_rating_winner, new_rating_loser).
    """
    expected_winner = expected_score(rating_winner, rating_loser)
    expected_loser = expected_score(rating_loser, rating_winner)

    new_winner = round_half_up(rating_winner + k_factor * (1.0 - expected_winner))
    new_loser = round_half_up(rating_loser + k_factor * (0.0 - expected_loser))

    return new_winner, new_loser


@dataclass(frozen=True)
class EloEngine:
    """Elo arithmetic bound to a configured K-factor and starting rating.

    Attributes:
        k_factor: Maximum rating points transferred per comparison.
        initial_rating: Rating given to new items.
    """

    k_factor: float = DEFAULT_K_FACTOR
    initial_rating: float = DEFAULT_RATING

    def expected_score(self, rating_self: float, rating_opponent: float) -> float:
        return expected_score(rating_self, rating_opponent)

    def apply_outcome(self, rating_winner: float, rating_loser: float) -> tuple[float, float]:
        """Return (new_winner, new_loser) ratings after the winner beats the loser."""
        return apply_outcome(rating_winner, rating_loser, self.k_factor)

    def reverse_outcome(self, rating_winner: float, rating_loser: float) -> tuple[float, float]:
        """Approximate undoing a decision by replaying it with sides swapped.

        Args:
            rating_winner: Current rating of the original winner.
            rating_loser: Current rating of the original loser.

        Returns:
            Tuple of (restored_winner, restored_loser).
        """
        new_loser, new_winner = apply_outcome(rating_loser, rating_winner, self.k_factor)
        return new_winner, new_loser
