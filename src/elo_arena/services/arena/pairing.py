"""Uniform random pair selection for Elo Arena."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

MIN_PAIR_SIZE = 2


@runtime_checkable
class RandomSource(Protocol):
    """Uniform source of integers, e.g. ``random.Random``."""

    def randrange(self, stop: int) -> int:
        """Return an integer in [0, stop)."""
        ...


def create_rng(seed: int | None = None) -> RandomSource:
    """Create the default random source, reproducible when seeded."""
    return random.Random(seed)  # noqa: S311


def select_pair(items: Sequence[T], rng: RandomSource) -> tuple[T, T] | None:
    """Choose two distinct items uniformly at random.

    Draws the first index from all n positions and the second from the
    remaining n - 1, shifting past the first. Every ordered pair of distinct
    positions is equally likely and exactly two draws are made, so the
    selection always terminates.

    Args:
        items: Candidates to choose from.
        rng: Source of uniform integers.

    Returns:
        Tuple of (item_a, item_b), or None if fewer than two items.
    """
    n = len(items)
    if n < MIN_PAIR_SIZE:
        return None

    index_a = rng.randrange(n)
    index_b = rng.randrange(n - 1)
    if index_b >= index_a:
        index_b += 1

    return items[index_a], items[index_b]
