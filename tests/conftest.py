"""Test configuration and fixtures.

This file contains fixtures used across all tests.
Database fixtures run against a throwaway SQLite file, so no server is needed.
"""

from collections.abc import AsyncGenerator, Callable, Sequence
from datetime import datetime, timedelta, timezone

import pytest

from ranking_engine.schemas.leader import ContributionEvent, ContributionKind, LeaderSnapshot, RawMetrics

BASE_TIME = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register integration test marker."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring database"
    )


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def make_event() -> Callable[..., ContributionEvent]:
    """Build a contribution event ``days_ago`` days before BASE_TIME."""

    def _make(
        leader_id: str,
        days_ago: float,
        points: float = 10.0,
        kind: ContributionKind = ContributionKind.TASK,
    ) -> ContributionEvent:
        return ContributionEvent(
            leader_id=leader_id,
            kind=kind,
            points=points,
            occurred_at=BASE_TIME - timedelta(days=days_ago),
        )

    return _make


@pytest.fixture
def make_leader() -> Callable[..., LeaderSnapshot]:
    """Build a raw leader snapshot whose overall equals ``task_points`` when history is empty."""

    def _make(
        leader_id: str,
        task_points: float = 0.0,
        history: Sequence[ContributionEvent] = (),
        team: str = "core",
        assist_points: float = 0.0,
        ritual_points: float = 0.0,
    ) -> LeaderSnapshot:
        return LeaderSnapshot(
            id=leader_id,
            name=leader_id.upper(),
            team=team,
            raw_metrics=RawMetrics(
                task_points=task_points,
                assist_points=assist_points,
                ritual_points=ritual_points,
            ),
            history=tuple(history),
        )

    return _make


# Integration test fixtures - only used by tests in tests/integration/
@pytest.fixture(scope="function")
async def session_maker(tmp_path) -> AsyncGenerator:
    """Create a fresh SQLite database for each integration test."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from ranking_engine.db.database import init_db

    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_db(test_engine)

    yield async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await test_engine.dispose()


@pytest.fixture
def memory_store():
    from ranking_engine.services.metric_store import InMemoryMetricStore

    return InMemoryMetricStore()


@pytest.fixture
def app(memory_store):
    from ranking_engine.api.app import create_app

    return create_app(store=memory_store)


@pytest.fixture(scope="function")
async def client(app) -> AsyncGenerator:
    """Create a test client for the app (lifespan tasks are not started)."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
