from datetime import datetime

import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ranking_engine.db.models.contribution import ContributionRecord
from ranking_engine.db.models.leader import Leader
from ranking_engine.schemas.leader import ContributionEvent, ContributionKind, LeaderSnapshot, RawMetrics
from ranking_engine.services.metric_store import KIND_TO_METRIC

logger = structlog.get_logger()


def _to_snapshot(leader: Leader) -> LeaderSnapshot:
    try:
        raw_metrics = RawMetrics(
            task_points=leader.task_points or 0.0,
            ritual_points=leader.ritual_points or 0.0,
            assist_points=leader.assist_points or 0.0,
        )
    except ValidationError as exc:
        # Unusable totals surface as missing metrics; the engine keeps prior values
        logger.warning("Invalid raw metrics for leader", leader_id=leader.id, error=str(exc))
        raw_metrics = None

    return LeaderSnapshot(
        id=leader.id,
        name=leader.name,
        team=leader.team or "",
        raw_metrics=raw_metrics,
    )


class SqlMetricStore:
    """MetricStore backed by the leaders and contribution_events tables."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def fetch_leaders(self) -> list[LeaderSnapshot]:
        async with self.session_maker() as db:
            result = await db.execute(select(Leader).order_by(Leader.id))
            return [_to_snapshot(leader) for leader in result.scalars().all()]

    async def fetch_leader(self, leader_id: str) -> LeaderSnapshot | None:
        async with self.session_maker() as db:
            leader = await db.get(Leader, leader_id)
            return _to_snapshot(leader) if leader else None

    async def fetch_history(self, leader_id: str) -> list[ContributionEvent] | None:
        async with self.session_maker() as db:
            if await db.get(Leader, leader_id) is None:
                return None
            result = await db.execute(
                select(ContributionRecord)
                .where(ContributionRecord.leader_id == leader_id)
                .order_by(ContributionRecord.occurred_at, ContributionRecord.id)
            )
            return [ContributionEvent.model_validate(record) for record in result.scalars().all()]

    async def upsert_leader(self, leader_id: str, name: str, team: str = "") -> None:
        async with self.session_maker() as db:
            leader = await db.get(Leader, leader_id)
            if leader is None:
                db.add(Leader(id=leader_id, name=name, team=team))
                logger.info("Leader created", leader_id=leader_id)
            else:
                leader.name = name
                leader.team = team
            await db.commit()

    async def record_event(
        self,
        leader_id: str,
        kind: ContributionKind,
        points: float,
        occurred_at: datetime,
    ) -> ContributionEvent:
        """Append an event and add its points to the leader's raw totals."""
        async with self.session_maker() as db:
            leader = await db.get(Leader, leader_id)
            if leader is None:
                raise ValueError(f"Leader {leader_id} not found")

            record = ContributionRecord(
                leader_id=leader_id,
                kind=kind.value,
                points=points,
                occurred_at=occurred_at,
            )
            db.add(record)

            field = KIND_TO_METRIC.get(kind)
            if field is not None:
                setattr(leader, field, (getattr(leader, field) or 0.0) + points)

            await db.commit()
            logger.info("Contribution recorded", leader_id=leader_id, kind=kind.value, points=points)
            return ContributionEvent(
                leader_id=leader_id,
                kind=kind,
                points=points,
                occurred_at=occurred_at,
            )
