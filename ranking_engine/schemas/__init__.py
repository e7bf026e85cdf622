from ranking_engine.schemas.leader import (
    ContributionEvent,
    ContributionKind,
    LeaderSnapshot,
    RawMetrics,
    Trend,
)
from ranking_engine.schemas.leaderboard import (
    ChangeNotification,
    FeedbackSuggestion,
    Insight,
    LeaderboardResponse,
    LeaderInsights,
    NotableEvent,
    PerformanceCategory,
    RankedCohort,
    ScorePrediction,
    TeamBenchmark,
)

__all__ = [
    "ContributionEvent",
    "ContributionKind",
    "LeaderSnapshot",
    "RawMetrics",
    "Trend",
    "RankedCohort",
    "NotableEvent",
    "ChangeNotification",
    "FeedbackSuggestion",
    "LeaderboardResponse",
    "Insight",
    "LeaderInsights",
    "ScorePrediction",
    "PerformanceCategory",
    "TeamBenchmark",
]
