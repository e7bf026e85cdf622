#!/usr/bin/env python
"""Run one full leaderboard refresh from the database and print the ranking."""

import asyncio
import sys

# Fix Windows asyncio
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


async def recalculate_leaderboard(limit: int = 10) -> None:
    """Recompute every leader and show the top of the cohort."""
    from ranking_engine.db import SqlMetricStore, get_session_maker
    from ranking_engine.services.leaderboard_service import LeaderboardReconciler
    from ranking_engine.services.refresh_service import RefreshService

    print("=" * 60)
    print("RECALCULATING LEADERBOARD")
    print("=" * 60)

    reconciler = LeaderboardReconciler()
    service = RefreshService(reconciler, SqlMetricStore(get_session_maker()))
    cohort = await service.refresh()

    print(f"\nRanked {len(cohort)} leaders (version {cohort.version})")
    print("-" * 80)
    print(f"{'Rank':<6}{'Leader':<25}{'Team':<15}{'Overall':<9}{'Consist.':<10}{'Momentum':<10}{'Trend':<8}")
    print("-" * 80)

    for rank, leader in enumerate(cohort.leaders[:limit], start=1):
        print(
            f"{rank:<6}"
            f"{leader.name[:24]:<25}"
            f"{leader.team[:14]:<15}"
            f"{leader.overall:<9}"
            f"{leader.consistency_score:<10.2f}"
            f"{leader.momentum:<10.2f}"
            f"{leader.trend.value:<8}"
        )

    print("-" * 80)


if __name__ == "__main__":
    asyncio.run(recalculate_leaderboard())
