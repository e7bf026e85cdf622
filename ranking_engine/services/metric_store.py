from collections import defaultdict
from collections.abc import Sequence
from typing import Protocol

from ranking_engine.schemas.leader import ContributionEvent, ContributionKind, LeaderSnapshot, RawMetrics

# Raw total that each contribution kind accrues into; check-ins accrue none
KIND_TO_METRIC = {
    ContributionKind.TASK: "task_points",
    ContributionKind.RITUAL: "ritual_points",
    ContributionKind.ASSIST: "assist_points",
}


class MetricStore(Protocol):
    """Read access to leaders and their append-only contribution history."""

    async def fetch_leaders(self) -> Sequence[LeaderSnapshot]:
        """All leaders with raw metrics, history not loaded."""
        ...

    async def fetch_leader(self, leader_id: str) -> LeaderSnapshot | None:
        ...

    async def fetch_history(self, leader_id: str) -> Sequence[ContributionEvent] | None:
        """Contribution events oldest first, or None when unknown."""
        ...


class InMemoryMetricStore:
    """Dict-backed MetricStore for local runs and tests."""

    def __init__(self) -> None:
        self._leaders: dict[str, LeaderSnapshot] = {}
        self._history: dict[str, list[ContributionEvent]] = defaultdict(list)

    def add_leader(self, leader_id: str, name: str, team: str = "", raw_metrics: RawMetrics | None = None) -> None:
        self._leaders[leader_id] = LeaderSnapshot(
            id=leader_id,
            name=name,
            team=team,
            raw_metrics=raw_metrics or RawMetrics(),
        )

    def record_event(self, event: ContributionEvent) -> None:
        leader = self._leaders[event.leader_id]
        self._history[event.leader_id].append(event)
        field = KIND_TO_METRIC.get(event.kind)
        if field is not None:
            metrics = leader.raw_metrics or RawMetrics()
            updated = metrics.model_copy(update={field: getattr(metrics, field) + event.points})
            self._leaders[event.leader_id] = leader.model_copy(update={"raw_metrics": updated})

    async def fetch_leaders(self) -> list[LeaderSnapshot]:
        return list(self._leaders.values())

    async def fetch_leader(self, leader_id: str) -> LeaderSnapshot | None:
        return self._leaders.get(leader_id)

    async def fetch_history(self, leader_id: str) -> list[ContributionEvent] | None:
        if leader_id not in self._leaders:
            return None
        return sorted(self._history[leader_id], key=lambda event: event.occurred_at)
