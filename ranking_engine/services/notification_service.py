from collections.abc import Callable

import structlog

from ranking_engine.core.config import settings
from ranking_engine.schemas.leader import LeaderSnapshot
from ranking_engine.schemas.leaderboard import NotableEvent, RankedCohort

logger = structlog.get_logger()

# Minimum absolute overall movement worth surfacing
NOTABLE_DELTA = settings.notable_delta_threshold

NotableEventSink = Callable[[NotableEvent], None]


def evaluate_transition(
    previous: LeaderSnapshot,
    new: LeaderSnapshot,
    threshold: int = NOTABLE_DELTA,
) -> NotableEvent | None:
    """Return a NotableEvent when the overall moved by at least the threshold."""
    if previous.id != new.id:
        raise ValueError(f"Cannot compare leader {previous.id} with leader {new.id}")

    delta = new.overall - previous.overall
    if abs(delta) < threshold:
        return None

    return NotableEvent(
        leader_id=new.id,
        name=new.name,
        previous_overall=previous.overall,
        new_overall=new.overall,
        delta=delta,
        direction="up" if delta > 0 else "down",
    )


class ChangeSignificanceNotifier:
    """Observes published cohorts and forwards notable score movements.

    Subscribe ``on_publish`` to the reconciler; it compares every leader
    present in both the previous and the new cohort.
    """

    def __init__(self, threshold: int = NOTABLE_DELTA) -> None:
        self.threshold = threshold
        self._sinks: list[NotableEventSink] = []

    def add_sink(self, sink: NotableEventSink) -> None:
        self._sinks.append(sink)

    def remove_sink(self, sink: NotableEventSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def on_publish(self, previous: RankedCohort, current: RankedCohort) -> list[NotableEvent]:
        events = []
        for leader in current.leaders:
            before = previous.get(leader.id)
            if before is None:
                continue
            event = evaluate_transition(before, leader, self.threshold)
            if event is None:
                continue
            logger.info(
                "Notable score change",
                leader_id=event.leader_id,
                previous_overall=event.previous_overall,
                new_overall=event.new_overall,
                delta=event.delta,
            )
            events.append(event)
            for sink in list(self._sinks):
                try:
                    sink(event)
                except Exception:
                    logger.exception("Notable event sink failed", leader_id=event.leader_id)
        return events
