"""Tests for Elo rating calculations."""

import pytest

from elo_arena.ranking.elo import (
    EloEngine,
    apply_outcome,
    expected_score,
    round_half_up,
)


class TestExpectedScore:
    """Tests for expected win probability calculation."""

    def test_equal_ratings(self):
        """Test equal ratings produce exactly 0.5 expected."""
        for rating in (0, 1000, 1400, 2750.5):
            assert expected_score(rating, rating) == 0.5

    def test_higher_rating_higher_expected(self):
        """Test higher rated player has higher expected score."""
        expected = expected_score(1600, 1400)
        assert 0.5 < expected < 1.0

    def test_complements_sum_to_one(self):
        """Test expected scores of both sides sum to 1."""
        pairs = [(1400, 1400), (1600, 1400), (800, 2200), (1416, 1384), (1000.5, 999.25)]
        for a, b in pairs:
            assert expected_score(a, b) + expected_score(b, a) == pytest.approx(1.0)

    def test_400_point_difference(self):
        """Test 400 point difference produces ~91% expected."""
        # 10^(400/400) = 10, so expected = 1/(1+0.1)
        assert expected_score(1900, 1500) == pytest.approx(1 / 1.1)


class TestRoundHalfUp:
    """Tests for the rounding policy."""

    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3.0
        assert round_half_up(1415.5) == 1416.0

    def test_negative_halves_round_towards_positive(self):
        assert round_half_up(-2.5) == -2.0

    def test_non_halves(self):
        assert round_half_up(1607.69) == 1608.0
        assert round_half_up(1392.31) == 1392.0


class TestApplyOutcome:
    """Tests for Elo rating updates."""

    def test_equal_ratings(self):
        """Test two 1400 items: winner gains 16, loser drops 16."""
        assert apply_outcome(1400, 1400, k_factor=32) == (1416.0, 1384.0)

    def test_favorite_wins(self):
        """Test 1600 beating 1400 moves each side by about 8."""
        assert apply_outcome(1600, 1400, k_factor=32) == (1608.0, 1392.0)

    def test_upset_win_larger_change(self):
        """Test upset win produces larger rating change."""
        new_winner, new_loser = apply_outcome(1400, 1600)
        assert new_winner - 1400 > 16
        assert 1600 - new_loser > 16

    def test_change_bounded_by_k(self):
        """Test neither side moves more than K points."""
        for winner, loser in [(1400, 1400), (100, 3000), (3000, 100), (1500, 1499)]:
            new_winner, new_loser = apply_outcome(winner, loser, k_factor=32)
            assert 0 <= new_winner - winner <= 32
            assert 0 <= loser - new_loser <= 32

    def test_results_are_integral(self):
        """Test ratings are rounded after every update."""
        new_winner, new_loser = apply_outcome(1523, 1377, k_factor=24)
        assert new_winner == int(new_winner)
        assert new_loser == int(new_loser)

    def test_default_k_factor(self):
        assert apply_outcome(1400, 1400) == apply_outcome(1400, 1400, k_factor=32)


class TestEloEngine:
    """Tests for EloEngine."""

    def test_defaults(self):
        engine = EloEngine()
        assert engine.k_factor == 32.0
        assert engine.initial_rating == 1400.0

    def test_custom_k_factor(self):
        engine = EloEngine(k_factor=16)
        assert engine.apply_outcome(1400, 1400) == (1408.0, 1392.0)

    def test_reverse_outcome_between_equals(self):
        """Test reversing a win between equals lands one point off each side."""
        engine = EloEngine()
        winner, loser = engine.apply_outcome(1400, 1400)
        # The reverse match is priced at 1416 vs 1384, so it moves ~17.5 points
        assert engine.reverse_outcome(winner, loser) == (1399.0, 1401.0)

    def test_reverse_outcome_is_lossy(self):
        """Test reversal lands within one update step, not exactly."""
        engine = EloEngine()
        winner, loser = engine.apply_outcome(1600, 1400)
        restored_winner, restored_loser = engine.reverse_outcome(winner, loser)
        assert abs(restored_winner - 1600) <= engine.k_factor
        assert abs(restored_loser - 1400) <= engine.k_factor
        assert restored_winner < winner
        assert restored_loser > loser
