#!/usr/bin/env python
"""Initialize the metric history database, optionally with demo leaders."""

import asyncio
import sys
from datetime import datetime, timedelta, timezone

from ranking_engine.core.config import settings
from ranking_engine.db import SqlMetricStore, get_session_maker, init_db
from ranking_engine.schemas.leader import ContributionKind

DEMO_LEADERS = [
    ("ana", "Ana Souza", "core"),
    ("bruno", "Bruno Lima", "core"),
    ("carla", "Carla Dias", "ops"),
    ("diego", "Diego Rocha", "ops"),
]


async def seed_demo_leaders(store: SqlMetricStore) -> None:
    """Create demo leaders with a few weeks of contributions."""
    if await store.fetch_leaders():
        print("Leaders already present, skipping demo data")
        return

    now = datetime.now(timezone.utc)
    for offset, (leader_id, name, team) in enumerate(DEMO_LEADERS):
        await store.upsert_leader(leader_id, name, team)
        for week in range(4):
            occurred_at = now - timedelta(days=7 * week + offset)
            await store.record_event(leader_id, ContributionKind.TASK, 10.0 + 2 * offset, occurred_at)
            if week % 2 == offset % 2:
                await store.record_event(leader_id, ContributionKind.RITUAL, 5.0, occurred_at)
        await store.record_event(leader_id, ContributionKind.ASSIST, 3.0 * offset, now)

    print(f"Created {len(DEMO_LEADERS)} demo leaders")


async def main() -> None:
    """Main initialization function."""
    print(f"Initializing database: {settings.database_url}")

    # Create tables
    await init_db()
    print("Database tables created")

    if "--demo" in sys.argv:
        await seed_demo_leaders(SqlMetricStore(get_session_maker()))

    print("Database initialization complete!")


if __name__ == "__main__":
    asyncio.run(main())
