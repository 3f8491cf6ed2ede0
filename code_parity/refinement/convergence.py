"""Score history tracking for convergence and stuck detection."""

import math
from typing import List, Optional

from ..core.config import LoopConfig
from .models import ConvergenceMetrics

TREND_WINDOW = 3


class ConvergenceTracker:
    """
    Records one parity score per iteration and reports whether progress has stalled.

    The loop is stuck once at least stuck_window scores exist and the
    difference between the newest and the oldest score of that trailing
    window is smaller in magnitude than stuck_threshold.
    """

    def __init__(self, config: Optional[LoopConfig] = None):
        self.config = config or LoopConfig()
        self._scores: List[float] = []

    @property
    def scores(self) -> List[float]:
        return list(self._scores)

    @property
    def best_score(self) -> float:
        return max(self._scores, default=0.0)

    def add_score(self, score: float) -> None:
        self._scores.append(score)

    def reset(self) -> None:
        self._scores = []

    def has_converged(self) -> bool:
        return bool(self._scores) and self._scores[-1] >= self.config.threshold

    def metrics(self) -> ConvergenceMetrics:
        metrics = ConvergenceMetrics(scores=self.scores)
        if not self._scores:
            return metrics

        if len(self._scores) >= 2:
            recent = self._scores[-TREND_WINDOW:]
            metrics.trend = recent[-1] - recent[0]

        window = self.config.stuck_window
        if len(self._scores) >= window:
            trailing = self._scores[-window:]
            improvement = trailing[-1] - trailing[0]
            if abs(improvement) < self.config.stuck_threshold:
                metrics.is_stuck = True
                if improvement <= 0:
                    metrics.stuck_reason = "no improvement in recent iterations"
                else:
                    metrics.stuck_reason = "improvement below threshold"

        remaining = self.config.threshold - self._scores[-1]
        if metrics.trend > 0 and remaining > 0:
            metrics.estimated_iterations_to_converge = math.ceil(remaining / metrics.trend)

        return metrics
