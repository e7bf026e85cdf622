from fastapi import APIRouter, Depends, HTTPException, Query, status

from ranking_engine.api.deps import get_feedback_service, get_reconciler
from ranking_engine.schemas.leaderboard import FeedbackSuggestion
from ranking_engine.services.feedback_suggestion_service import FeedbackSuggestionService
from ranking_engine.services.leaderboard_service import LeaderboardReconciler

router = APIRouter()


@router.get(
    "/{leader_id}/suggestion",
    response_model=FeedbackSuggestion,
    summary="Decide whether to prompt a leader for peer feedback, and about whom",
)
async def get_feedback_suggestion(
    leader_id: str,
    shown_today: bool = Query(False),
    recently_suggested: list[str] = Query([]),
    recently_evaluated: list[str] = Query([]),
    reconciler: LeaderboardReconciler = Depends(get_reconciler),
    service: FeedbackSuggestionService = Depends(get_feedback_service),
) -> FeedbackSuggestion:
    """Peers are drawn from the ranked cohort; nothing here affects scores."""
    cohort = reconciler.cohort
    if cohort.get(leader_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leader {leader_id} not found",
        )

    if not service.should_show_today(shown_today):
        return FeedbackSuggestion(leader_id=leader_id, show=False)

    suggested = service.suggest_leader(
        leader_id,
        cohort.leaders,
        recently_suggested=set(recently_suggested),
        recently_evaluated=set(recently_evaluated),
    )
    return FeedbackSuggestion(
        leader_id=leader_id,
        show=suggested is not None,
        suggested_leader_id=suggested,
    )
