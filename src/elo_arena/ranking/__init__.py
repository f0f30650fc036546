"""Ranking module for Elo Arena.

Pure Elo arithmetic: expected scores and rounded rating updates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from elo_arena.ranking.elo import EloEngine, apply_outcome, expected_score, round_half_up

if TYPE_CHECKING:
    from elo_arena.core.config import ArenaConfig


def create_rating_engine(config: ArenaConfig) -> EloEngine:
    """Create the rating engine described by config.

    Args:
        config: Arena configuration.

    Returns:
        Configured Elo engine.
    """
    return EloEngine(
        k_factor=config.ranking.k_factor,
        initial_rating=config.ranking.initial_rating,
    )


__all__ = [
    "EloEngine",
    "apply_outcome",
    "create_rating_engine",
    "expected_score",
    "round_half_up",
]
