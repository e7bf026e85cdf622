"""Coaching insights, score predictions and team benchmarks for ranked leaders."""

from datetime import datetime, timezone

from ranking_engine.schemas.leader import LeaderSnapshot, RawMetrics
from ranking_engine.schemas.leaderboard import (
    Insight,
    LeaderInsights,
    PerformanceCategory,
    RankedCohort,
    ScorePrediction,
    TeamBenchmark,
)
from ranking_engine.services.weights import round_half_up

# Relative bands around the cohort average for task points
ABOVE_AVERAGE_RATIO = 1.2
BELOW_AVERAGE_RATIO = 0.8
LOW_ASSIST_POINTS = 10
MOMENTUM_CALLOUT = 20
HIGH_CONSISTENCY = 80

PERFORMANCE_BANDS = [
    (90, "Legendary", "Exceptional performance in every area"),
    (80, "Elite", "Consistently above expectations"),
    (70, "Starter", "Solid performance with room to grow"),
    (60, "Developing", "Good potential, needs focus on key areas"),
]


def _metrics(leader: LeaderSnapshot) -> RawMetrics:
    return leader.raw_metrics or RawMetrics()


def generate_insights(leader: LeaderSnapshot, cohort: RankedCohort) -> list[Insight]:
    insights: list[Insight] = []
    if not cohort.leaders:
        return insights

    count = len(cohort.leaders)
    avg_tasks = sum(_metrics(other).task_points for other in cohort.leaders) / count
    task_points = _metrics(leader).task_points

    if avg_tasks > 0 and task_points > avg_tasks * ABOVE_AVERAGE_RATIO:
        percent = int(round_half_up((task_points / avg_tasks - 1) * 100))
        insights.append(
            Insight(
                type="positive",
                category="Tasks",
                message=f"You are {percent}% above average on completed tasks",
                actionable="Keep up this execution pace",
            )
        )
    elif avg_tasks > 0 and task_points < avg_tasks * BELOW_AVERAGE_RATIO:
        percent = int(round_half_up((1 - task_points / avg_tasks) * 100))
        insights.append(
            Insight(
                type="warning",
                category="Tasks",
                message=f"Your tasks are {percent}% below average",
                actionable="Prioritise finishing this week's pending tasks",
            )
        )

    if _metrics(leader).assist_points < LOW_ASSIST_POINTS:
        insights.append(
            Insight(
                type="neutral",
                category="Collaboration",
                message="Room to grow your assists",
                actionable="Recognise peers who did good work this week",
            )
        )

    if leader.momentum > MOMENTUM_CALLOUT:
        insights.append(
            Insight(
                type="positive",
                category="Momentum",
                message=f"On the rise: +{int(round_half_up(leader.momentum))} points this week",
                actionable="Keep the pace to climb the ranking",
            )
        )
    elif leader.momentum < -MOMENTUM_CALLOUT:
        insights.append(
            Insight(
                type="warning",
                category="Momentum",
                message=f"Careful: down {int(round_half_up(abs(leader.momentum)))} points this week",
                actionable="Review your priorities and focus on the core areas",
            )
        )

    if leader.consistency_score > HIGH_CONSISTENCY:
        insights.append(
            Insight(
                type="positive",
                category="Consistency",
                message="Very consistent performance, and it counts towards your overall",
                actionable="Keep this steady rhythm",
            )
        )

    return insights


def predict_next_score(leader: LeaderSnapshot) -> ScorePrediction:
    """Project the overall one momentum window ahead."""
    if not leader.history or len(leader.history) < 3:
        return ScorePrediction(predicted=leader.overall, confidence=0.3)

    predicted = int(round_half_up(leader.overall + leader.momentum))
    confidence = min(0.9, leader.consistency_score / 100 * 0.8 + 0.2)
    return ScorePrediction(predicted=predicted, confidence=round(confidence, 2))


def performance_category(score: int) -> PerformanceCategory:
    for floor, label, description in PERFORMANCE_BANDS:
        if score >= floor:
            return PerformanceCategory(label=label, description=description)
    return PerformanceCategory(
        label="Needs Attention",
        description="Needs support and a reset of priorities",
    )


def team_benchmark(cohort: RankedCohort, team: str) -> TeamBenchmark | None:
    members = [leader for leader in cohort.leaders if leader.team == team]
    if not members:
        return None

    # Cohort order puts the best overall first, ties broken by id
    return TeamBenchmark(
        team=team,
        avg_overall=sum(leader.overall for leader in members) / len(members),
        avg_task_points=sum(_metrics(leader).task_points for leader in members) / len(members),
        top_performer=members[0],
    )


def build_leader_insights(leader: LeaderSnapshot, cohort: RankedCohort) -> LeaderInsights:
    return LeaderInsights(
        leader_id=leader.id,
        insights=generate_insights(leader, cohort),
        prediction=predict_next_score(leader),
        category=performance_category(leader.overall),
        generated_at=datetime.now(timezone.utc),
    )
