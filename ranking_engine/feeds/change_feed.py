import asyncio
from collections.abc import AsyncIterator
from typing import Protocol

import structlog

from ranking_engine.schemas.leader import LeaderSnapshot
from ranking_engine.schemas.leaderboard import ChangeNotification
from ranking_engine.services.leaderboard_service import LeaderboardReconciler
from ranking_engine.services.metric_store import MetricStore

logger = structlog.get_logger()

# Leader fields whose change affects derived values or the leaderboard row
SCORING_FIELDS = frozenset(
    {
        "task_points",
        "ritual_points",
        "assist_points",
        "history",
        "contributions",
        "name",
        "team",
    }
)


class ChangeFeed(Protocol):
    """Push source of leader change notifications."""

    def listen(self) -> AsyncIterator[ChangeNotification]:
        ...


class InMemoryChangeFeed:
    """Queue-backed ChangeFeed. ``close`` ends every listener after the backlog."""

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()

    async def publish(self, notification: ChangeNotification) -> None:
        await self._queue.put(notification)

    async def close(self) -> None:
        await self._queue.put(self._CLOSED)

    async def listen(self) -> AsyncIterator[ChangeNotification]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item


class ChangeFeedConsumer:
    """Turns change notifications into incremental leaderboard updates."""

    def __init__(
        self,
        reconciler: LeaderboardReconciler,
        store: MetricStore,
        relevant_fields: frozenset[str] = SCORING_FIELDS,
    ) -> None:
        self.reconciler = reconciler
        self.store = store
        self.relevant_fields = relevant_fields

    def is_relevant(self, notification: ChangeNotification) -> bool:
        # An empty field set means the writer did not say; assume it matters
        if not notification.changed_fields:
            return True
        return bool(notification.changed_fields & self.relevant_fields)

    async def handle(self, notification: ChangeNotification) -> LeaderSnapshot | None:
        if not self.is_relevant(notification):
            logger.debug(
                "Ignoring change notification",
                leader_id=notification.leader_id,
                changed_fields=sorted(notification.changed_fields),
            )
            return self.reconciler.cohort.get(notification.leader_id)

        version = self.reconciler.issue_version()
        leader = await self.store.fetch_leader(notification.leader_id)
        if leader is None:
            logger.warning("Change notification for unknown leader", leader_id=notification.leader_id)
            return None
        history = await self.store.fetch_history(notification.leader_id)

        return await self.reconciler.submit_incremental_update(
            leader.id,
            leader.raw_metrics,
            history,
            version=version,
            name=leader.name,
            team=leader.team,
        )

    async def run(self, feed: ChangeFeed) -> None:
        """Consume the feed until it ends or the task is cancelled."""
        async for notification in feed.listen():
            try:
                await self.handle(notification)
            except Exception:
                logger.exception("Change notification failed", leader_id=notification.leader_id)
