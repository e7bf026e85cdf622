from fastapi import APIRouter

from ranking_engine.api.routes.feedback import router as feedback_router
from ranking_engine.api.routes.leaderboard import router as leaderboard_router
from ranking_engine.api.routes.notifications import router as notifications_router

router = APIRouter()

router.include_router(leaderboard_router, prefix="/leaderboard", tags=["leaderboard"])
router.include_router(notifications_router, prefix="/notable", tags=["notifications"])
router.include_router(feedback_router, prefix="/feedback", tags=["feedback"])
