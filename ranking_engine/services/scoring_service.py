import math

from ranking_engine.core.exceptions import MissingDataError
from ranking_engine.schemas.leader import LeaderSnapshot, RawMetrics
from ranking_engine.services.history_stats import (
    TREND_EPSILON,
    compute_consistency,
    compute_momentum,
    compute_trend,
    ordered_history,
)
from ranking_engine.services.weights import DEFAULT_WEIGHTS, ScoreWeights, round_half_up

OVERALL_FLOOR = 0


def compute_overall(
    raw_metrics: RawMetrics | None,
    consistency_score: float,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> int:
    """Combine raw point totals and consistency into the overall score.

    overall = tasks * w.tasks + assists * w.assists + rituals * w.rituals
              + consistency * w.consistency

    rounded half-up and clamped to [OVERALL_FLOOR, w.ceiling]. Absent
    metrics contribute nothing.
    """
    metrics = raw_metrics or RawMetrics()
    base = (
        metrics.task_points * weights.tasks
        + metrics.assist_points * weights.assists
        + metrics.ritual_points * weights.rituals
        + (consistency_score or 0.0) * weights.consistency
    )
    overall = max(OVERALL_FLOOR, int(round_half_up(base)))
    if weights.ceiling is not None:
        overall = min(overall, weights.ceiling)
    return overall


class ScoringService:
    """Derives a leader's overall, consistency, momentum and trend as one unit."""

    def __init__(
        self,
        weights: ScoreWeights | None = None,
        trend_epsilon: float = TREND_EPSILON,
    ) -> None:
        self.weights = weights or DEFAULT_WEIGHTS
        self.trend_epsilon = trend_epsilon

    def compute_overall(self, raw_metrics: RawMetrics | None, consistency_score: float) -> int:
        return compute_overall(raw_metrics, consistency_score, self.weights)

    def derive_snapshot(self, snapshot: LeaderSnapshot) -> LeaderSnapshot:
        """Recompute every derived field of a snapshot from its raw inputs.

        Raises MissingDataError when raw metrics or history are absent (or
        the metrics are not finite numbers) and InconsistentHistoryError when
        the history cannot be ordered. The rank change is left untouched; it
        needs the whole cohort.
        """
        if snapshot.raw_metrics is None:
            raise MissingDataError(snapshot.id, "raw metrics")
        metrics = snapshot.raw_metrics
        if not all(
            math.isfinite(value)
            for value in (metrics.task_points, metrics.ritual_points, metrics.assist_points)
        ):
            raise MissingDataError(snapshot.id, "finite raw metrics")
        if snapshot.history is None:
            raise MissingDataError(snapshot.id, "history")

        history = ordered_history(snapshot.history, leader_id=snapshot.id)
        consistency = compute_consistency(history)
        momentum = compute_momentum(history, self.weights)
        return snapshot.model_copy(
            update={
                "history": history,
                "overall": self.compute_overall(snapshot.raw_metrics, consistency),
                "consistency_score": consistency,
                "momentum": momentum,
                "trend": compute_trend(momentum, self.trend_epsilon),
            }
        )
