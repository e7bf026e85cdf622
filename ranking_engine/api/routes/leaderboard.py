from fastapi import APIRouter, Depends, HTTPException, Query, status

from ranking_engine.api.deps import get_reconciler, get_refresh_service
from ranking_engine.core.config import settings
from ranking_engine.schemas.leader import LeaderSnapshot
from ranking_engine.schemas.leaderboard import LeaderboardResponse, LeaderInsights, TeamBenchmark
from ranking_engine.services.insight_service import build_leader_insights, team_benchmark
from ranking_engine.services.leaderboard_service import LeaderboardReconciler
from ranking_engine.services.refresh_service import RefreshService

router = APIRouter()


@router.get(
    "",
    response_model=LeaderboardResponse,
    summary="Get the ranked leaderboard",
)
async def get_leaderboard(
    page: int = Query(1, ge=1),
    page_size: int = Query(
        settings.api_pagination_default_limit,
        ge=1,
        le=settings.api_pagination_max_limit,
    ),
    reconciler: LeaderboardReconciler = Depends(get_reconciler),
) -> LeaderboardResponse:
    """Read a page of the current canonical cohort."""
    cohort = reconciler.cohort
    offset = (page - 1) * page_size
    return LeaderboardResponse(
        version=cohort.version,
        entries=list(cohort.leaders[offset : offset + page_size]),
        total=len(cohort),
        page=page,
        page_size=page_size,
    )


@router.post(
    "/refresh",
    summary="Trigger a full leaderboard refresh",
)
async def trigger_refresh(
    service: RefreshService = Depends(get_refresh_service),
) -> dict:
    """Reload every leader from the metric store and republish the cohort."""
    cohort = await service.refresh()
    return {"status": "completed", "version": cohort.version, "total": len(cohort)}


@router.get(
    "/teams/{team}",
    response_model=TeamBenchmark,
    summary="Get team benchmarks",
)
async def get_team_benchmark(
    team: str,
    reconciler: LeaderboardReconciler = Depends(get_reconciler),
) -> TeamBenchmark:
    benchmark = team_benchmark(reconciler.cohort, team)
    if benchmark is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Team {team} has no ranked leaders",
        )
    return benchmark


@router.get(
    "/{leader_id}",
    response_model=LeaderSnapshot,
    summary="Get a leader's ranked snapshot",
)
async def get_leader(
    leader_id: str,
    reconciler: LeaderboardReconciler = Depends(get_reconciler),
) -> LeaderSnapshot:
    leader = reconciler.cohort.get(leader_id)
    if leader is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leader {leader_id} not found",
        )
    return leader


@router.get(
    "/{leader_id}/insights",
    response_model=LeaderInsights,
    summary="Get coaching insights for a leader",
)
async def get_leader_insights(
    leader_id: str,
    reconciler: LeaderboardReconciler = Depends(get_reconciler),
) -> LeaderInsights:
    cohort = reconciler.cohort
    leader = cohort.get(leader_id)
    if leader is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leader {leader_id} not found",
        )
    return build_leader_insights(leader, cohort)
