"""Time-windowed statistics over a leader's contribution history.

All windows are anchored at ``as_of`` when given, otherwise at the newest
event, so every result is a pure function of the history itself.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

from ranking_engine.core.config import settings
from ranking_engine.core.exceptions import InconsistentHistoryError
from ranking_engine.schemas.leader import ContributionEvent, Trend
from ranking_engine.services.weights import DEFAULT_WEIGHTS, ScoreWeights, round_half_up

# Single tunable knob for trend noise sensitivity
TREND_EPSILON = settings.trend_epsilon

# Consistency reported for a history holding exactly one event: one data
# point says nothing about regularity, so it scores like no data at all.
INSUFFICIENT_DATA_CONSISTENCY = 0.0

# Minimum history length for a non-zero momentum; a lone event has no
# earlier activity to compare against.
MIN_MOMENTUM_EVENTS = 2


def _is_aware(moment: datetime) -> bool:
    return moment.tzinfo is not None and moment.tzinfo.utcoffset(moment) is not None


def ordered_history(
    history: Iterable[ContributionEvent],
    leader_id: str | None = None,
) -> tuple[ContributionEvent, ...]:
    """Return the history sorted oldest first.

    Raises InconsistentHistoryError when the events cannot be ordered
    (naive and timezone-aware timestamps mixed), carry non-finite points,
    or belong to a different leader.
    """
    events = tuple(history)
    if not events:
        return events

    awareness = {_is_aware(event.occurred_at) for event in events}
    if len(awareness) > 1:
        raise InconsistentHistoryError(
            "naive and timezone-aware timestamps mixed", leader_id=leader_id
        )

    for event in events:
        if not math.isfinite(event.points):
            raise InconsistentHistoryError(
                f"non-finite points at {event.occurred_at.isoformat()}",
                leader_id=leader_id,
            )
        if leader_id is not None and event.leader_id != leader_id:
            raise InconsistentHistoryError(
                f"event recorded for leader {event.leader_id}", leader_id=leader_id
            )

    # sorted() is stable, so same-instant events keep their recorded order
    return tuple(sorted(events, key=lambda event: event.occurred_at))


def _anchor(events: Sequence[ContributionEvent], as_of: datetime | None) -> datetime:
    """Window end aligned with the history's timezone convention."""
    latest = events[-1].occurred_at
    if as_of is None:
        return latest
    if _is_aware(latest) and not _is_aware(as_of):
        return as_of.replace(tzinfo=timezone.utc)
    if not _is_aware(latest) and _is_aware(as_of):
        return as_of.astimezone(timezone.utc).replace(tzinfo=None)
    return as_of


def compute_consistency(
    history: Iterable[ContributionEvent],
    as_of: datetime | None = None,
    window_days: int | None = None,
    period_days: int | None = None,
) -> float:
    """Regularity of contribution over the trailing window, 0-100.

    The window is split into equal periods and the coefficient of variation
    of per-period event counts is mapped to ``100 * max(0, 1 - cv)``.
    Volume does not matter: one event every week scores the same as ten.
    """
    events = ordered_history(history)
    if not events:
        return 0.0
    if len(events) == 1:
        return INSUFFICIENT_DATA_CONSISTENCY

    window = timedelta(days=window_days or settings.consistency_window_days)
    period = timedelta(days=period_days or settings.consistency_period_days)
    periods = max(1, math.ceil(window / period))

    end = _anchor(events, as_of)
    start = end - window
    counts = [0] * periods
    for event in events:
        if start < event.occurred_at <= end:
            index = min(int((end - event.occurred_at) / period), periods - 1)
            counts[index] += 1

    mean = sum(counts) / periods
    if mean == 0:
        return 0.0

    variance = sum((count - mean) ** 2 for count in counts) / periods
    coefficient_of_variation = math.sqrt(variance) / mean
    score = 100.0 * max(0.0, 1.0 - coefficient_of_variation)
    return float(round_half_up(score, 2))


def compute_momentum(
    history: Iterable[ContributionEvent],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
    as_of: datetime | None = None,
    window_days: int | None = None,
) -> float:
    """Weighted points in the recent window minus the window before it.

    Histories shorter than MIN_MOMENTUM_EVENTS have a momentum of 0.
    """
    events = ordered_history(history)
    if len(events) < MIN_MOMENTUM_EVENTS:
        return 0.0

    window = timedelta(days=window_days or settings.momentum_window_days)
    end = _anchor(events, as_of)
    recent_start = end - window
    prior_start = recent_start - window

    recent = 0.0
    prior = 0.0
    for event in events:
        weighted = event.points * weights.for_kind(event.kind)
        if recent_start < event.occurred_at <= end:
            recent += weighted
        elif prior_start < event.occurred_at <= recent_start:
            prior += weighted

    return float(round_half_up(recent - prior, 2))


def compute_trend(momentum: float, epsilon: float = TREND_EPSILON) -> Trend:
    """Categorical projection of momentum. Never looks at history."""
    if abs(momentum) < epsilon:
        return Trend.FLAT
    return Trend.RISING if momentum > 0 else Trend.FALLING
