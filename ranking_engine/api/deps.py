from fastapi import HTTPException, Request, status

from ranking_engine.api.broadcaster import NotableEventBroadcaster
from ranking_engine.services.feedback_suggestion_service import FeedbackSuggestionService
from ranking_engine.services.leaderboard_service import LeaderboardReconciler
from ranking_engine.services.refresh_service import RefreshService


def get_reconciler(request: Request) -> LeaderboardReconciler:
    return request.app.state.reconciler


def get_broadcaster(request: Request) -> NotableEventBroadcaster:
    return request.app.state.broadcaster


def get_refresh_service(request: Request) -> RefreshService:
    store = request.app.state.store
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No metric store configured",
        )
    return RefreshService(request.app.state.reconciler, store)


def get_feedback_service(request: Request) -> FeedbackSuggestionService:
    return request.app.state.feedback
