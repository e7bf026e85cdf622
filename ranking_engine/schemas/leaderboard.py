from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ranking_engine.schemas.leader import LeaderSnapshot


def cohort_sort_key(snapshot: LeaderSnapshot) -> tuple[int, str]:
    """Overall descending, then id ascending."""
    return (-snapshot.overall, snapshot.id)


class RankedCohort(BaseModel):
    """The full ordered leaderboard at one instant."""

    model_config = ConfigDict(frozen=True)

    version: int = 0
    leaders: tuple[LeaderSnapshot, ...] = ()

    @model_validator(mode="after")
    def check_ordering(self) -> "RankedCohort":
        ids = [leader.id for leader in self.leaders]
        if len(ids) != len(set(ids)):
            raise ValueError("cohort contains duplicate leader ids")
        keys = [cohort_sort_key(leader) for leader in self.leaders]
        if keys != sorted(keys):
            raise ValueError("cohort is not sorted by overall desc, id asc")
        return self

    def __len__(self) -> int:
        return len(self.leaders)

    def position(self, leader_id: str) -> int | None:
        for index, leader in enumerate(self.leaders):
            if leader.id == leader_id:
                return index
        return None

    def get(self, leader_id: str) -> LeaderSnapshot | None:
        index = self.position(leader_id)
        return None if index is None else self.leaders[index]


class NotableEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    leader_id: str
    name: str
    previous_overall: int
    new_overall: int
    delta: int
    direction: Literal["up", "down"]


class ChangeNotification(BaseModel):
    """A change-feed message: which leader changed and which fields."""

    model_config = ConfigDict(frozen=True)

    leader_id: str = Field(..., min_length=1)
    changed_fields: frozenset[str] = frozenset()


class LeaderboardResponse(BaseModel):
    version: int
    entries: list[LeaderSnapshot]
    total: int
    page: int
    page_size: int


class Insight(BaseModel):
    type: Literal["positive", "warning", "neutral"]
    category: str
    message: str
    actionable: str | None = None


class ScorePrediction(BaseModel):
    predicted: int
    confidence: float


class PerformanceCategory(BaseModel):
    label: str
    description: str


class TeamBenchmark(BaseModel):
    team: str
    avg_overall: float
    avg_task_points: float
    top_performer: LeaderSnapshot


class LeaderInsights(BaseModel):
    leader_id: str
    insights: list[Insight]
    prediction: ScorePrediction
    category: PerformanceCategory
    generated_at: datetime


class FeedbackSuggestion(BaseModel):
    leader_id: str
    show: bool
    suggested_leader_id: str | None = None
