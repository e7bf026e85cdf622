import asyncio

import structlog

from ranking_engine.core.config import settings
from ranking_engine.schemas.leader import LeaderSnapshot
from ranking_engine.schemas.leaderboard import RankedCohort
from ranking_engine.services.leaderboard_service import LeaderboardReconciler
from ranking_engine.services.metric_store import MetricStore

logger = structlog.get_logger()


class RefreshService:
    """Pull-based path: reload every leader from the store and resubmit."""

    def __init__(self, reconciler: LeaderboardReconciler, store: MetricStore) -> None:
        self.reconciler = reconciler
        self.store = store

    async def load_raw_snapshots(self) -> list[LeaderSnapshot]:
        leaders = await self.store.fetch_leaders()
        snapshots = []
        for leader in leaders:
            history = await self.store.fetch_history(leader.id)
            snapshots.append(
                leader.model_copy(update={"history": tuple(history) if history is not None else None})
            )
        return snapshots

    async def refresh(self) -> RankedCohort:
        """Run one full refresh and return the canonical cohort afterwards."""
        # Stamp before reading so later pushes win over this snapshot of the store
        version = self.reconciler.issue_version()
        snapshots = await self.load_raw_snapshots()
        logger.info("Submitting full refresh", version=version, leaders=len(snapshots))
        return await self.reconciler.submit_full_refresh(snapshots, version=version)

    async def run_periodic(self, interval: float | None = None) -> None:
        """Refresh forever; cancel the task to stop."""
        interval = interval or settings.refresh_interval_seconds
        while True:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Periodic refresh failed")
            await asyncio.sleep(interval)
