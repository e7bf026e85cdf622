from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

from ranking_engine.core.config import settings
from ranking_engine.schemas.leader import ContributionKind


class ScoreWeights(BaseModel):
    """Weighting policy for the overall score and for momentum points.

    tasks/assists/rituals multiply the matching raw point totals, checkins
    weight wellbeing check-in events in momentum, and consistency multiplies
    the 0-100 consistency score.
    """

    model_config = ConfigDict(frozen=True)

    tasks: float = Field(1.0, ge=0)
    assists: float = Field(1.0, ge=0)
    rituals: float = Field(1.0, ge=0)
    checkins: float = Field(1.0, ge=0)
    consistency: float = Field(0.1, ge=0)
    ceiling: int | None = Field(100, ge=0)

    def for_kind(self, kind: ContributionKind) -> float:
        return {
            ContributionKind.TASK: self.tasks,
            ContributionKind.ASSIST: self.assists,
            ContributionKind.RITUAL: self.rituals,
            ContributionKind.CHECKIN: self.checkins,
        }[kind]


DEFAULT_WEIGHTS = ScoreWeights(
    tasks=settings.weight_tasks,
    assists=settings.weight_assists,
    rituals=settings.weight_rituals,
    checkins=settings.weight_checkins,
    consistency=settings.weight_consistency,
    ceiling=settings.overall_ceiling,
)


def round_half_up(value: float, places: int = 0) -> Decimal:
    """Round with ties away from zero, independent of float banker's rounding."""
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)
