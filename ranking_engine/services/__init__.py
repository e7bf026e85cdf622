from ranking_engine.services.feedback_suggestion_service import FeedbackSuggestionService
from ranking_engine.services.leaderboard_service import LeaderboardReconciler
from ranking_engine.services.metric_store import InMemoryMetricStore, MetricStore
from ranking_engine.services.notification_service import ChangeSignificanceNotifier, evaluate_transition
from ranking_engine.services.refresh_service import RefreshService
from ranking_engine.services.scoring_service import ScoringService, compute_overall

__all__ = [
    "LeaderboardReconciler",
    "ScoringService",
    "compute_overall",
    "ChangeSignificanceNotifier",
    "evaluate_transition",
    "RefreshService",
    "MetricStore",
    "InMemoryMetricStore",
    "FeedbackSuggestionService",
]
