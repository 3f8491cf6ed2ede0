"""
Tests for convergence tracking and stuck detection.
"""

import pytest

from code_parity.core.config import LoopConfig
from code_parity.refinement.convergence import ConvergenceTracker


def _tracker(*scores, **config):
    tracker = ConvergenceTracker(LoopConfig(**config))
    for score in scores:
        tracker.add_score(score)
    return tracker


class TestConvergenceTracker:

    def test_empty(self):
        tracker = ConvergenceTracker()
        metrics = tracker.metrics()
        assert metrics.scores == []
        assert not metrics.is_stuck
        assert tracker.best_score == 0.0
        assert not tracker.has_converged()

    def test_scores_are_copied(self):
        tracker = _tracker(0.4)
        tracker.scores.append(0.9)
        assert tracker.scores == [0.4]

    def test_best_score_and_convergence(self):
        tracker = _tracker(0.4, 0.97, 0.9)
        assert tracker.best_score == 0.97
        # only the latest score counts
        assert not tracker.has_converged()
        tracker.add_score(0.96)
        assert tracker.has_converged()

    def test_reset(self):
        tracker = _tracker(0.5, 0.6)
        tracker.reset()
        assert tracker.scores == []

    def test_not_stuck_before_window_fills(self):
        assert not _tracker(0.5, 0.5).metrics().is_stuck

    def test_flat_scores_are_stuck(self):
        metrics = _tracker(0.5, 0.5, 0.5).metrics()
        assert metrics.is_stuck
        assert metrics.stuck_reason == "no improvement in recent iterations"

    def test_small_decline_is_stuck(self):
        metrics = _tracker(0.6, 0.59, 0.595).metrics()
        assert metrics.is_stuck
        assert metrics.stuck_reason == "no improvement in recent iterations"

    def test_small_improvement_is_stuck(self):
        metrics = _tracker(0.5, 0.51, 0.515).metrics()
        assert metrics.is_stuck
        assert metrics.stuck_reason == "improvement below threshold"

    def test_large_regression_is_not_stuck(self):
        metrics = _tracker(0.8, 0.5, 0.3).metrics()
        assert not metrics.is_stuck
        assert metrics.trend < 0
        assert metrics.estimated_iterations_to_converge == 0

    def test_only_trailing_window_counts(self):
        assert _tracker(0.1, 0.5, 0.5, 0.5).metrics().is_stuck
        assert not _tracker(0.1, 0.5, 0.5, 0.5, stuck_window=4).metrics().is_stuck

    def test_trend_and_estimate(self):
        metrics = _tracker(0.1, 0.5, 0.6, 0.7).metrics()
        assert not metrics.is_stuck
        assert metrics.trend == pytest.approx(0.2)
        # 0.25 remaining at 0.2 per window
        assert metrics.estimated_iterations_to_converge == 2

    def test_trend_with_two_scores(self):
        assert _tracker(0.2, 0.5).metrics().trend == pytest.approx(0.3)

    def test_custom_threshold(self):
        tracker = _tracker(0.8, threshold=0.75)
        assert tracker.has_converged()
