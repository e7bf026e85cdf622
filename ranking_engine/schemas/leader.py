from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContributionKind(str, Enum):
    TASK = "task"
    RITUAL = "ritual"
    ASSIST = "assist"
    CHECKIN = "checkin"


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    FLAT = "flat"


class ContributionEvent(BaseModel):
    """A dated contribution fact. Never mutated once recorded."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    leader_id: str = Field(..., min_length=1)
    kind: ContributionKind
    points: float
    occurred_at: datetime


class RawMetrics(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True, allow_inf_nan=False)

    task_points: float = 0.0
    ritual_points: float = 0.0
    assist_points: float = 0.0


class LeaderSnapshot(BaseModel):
    """A leader's raw inputs together with the values derived from them.

    ``overall``, ``consistency_score``, ``momentum``, ``trend`` and
    ``rank_change`` are derived and only ever set together by the scoring
    and ranking services.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    team: str = ""
    raw_metrics: RawMetrics | None = None
    history: tuple[ContributionEvent, ...] | None = None

    overall: int = 0
    consistency_score: float = 0.0
    momentum: float = 0.0
    trend: Trend = Trend.FLAT
    rank_change: int | None = None
