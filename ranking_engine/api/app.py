import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ranking_engine.api.broadcaster import NotableEventBroadcaster
from ranking_engine.api.routes import router as api_router
from ranking_engine.core.config import settings
from ranking_engine.db import SqlMetricStore, get_session_maker, init_db
from ranking_engine.feeds.change_feed import ChangeFeed, ChangeFeedConsumer
from ranking_engine.services.feedback_suggestion_service import FeedbackSuggestionService
from ranking_engine.services.leaderboard_service import LeaderboardReconciler
from ranking_engine.services.metric_store import MetricStore
from ranking_engine.services.notification_service import ChangeSignificanceNotifier
from ranking_engine.services.refresh_service import RefreshService

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the periodic refresh and change-feed consumer for the app's lifetime."""
    # Startup
    if app.state.store is None:
        await init_db()
        app.state.store = SqlMetricStore(get_session_maker())

    reconciler = app.state.reconciler
    tasks = [asyncio.create_task(RefreshService(reconciler, app.state.store).run_periodic())]
    if app.state.change_feed is not None:
        consumer = ChangeFeedConsumer(reconciler, app.state.store)
        tasks.append(asyncio.create_task(consumer.run(app.state.change_feed)))
    logger.info("Background reconciliation started", tasks=len(tasks))

    yield

    # Shutdown
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def create_app(
    reconciler: LeaderboardReconciler | None = None,
    store: MetricStore | None = None,
    change_feed: ChangeFeed | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Leader scoring and live ranking API",
        lifespan=lifespan,
    )

    reconciler = reconciler or LeaderboardReconciler()
    notifier = ChangeSignificanceNotifier()
    broadcaster = NotableEventBroadcaster()
    notifier.add_sink(broadcaster.push)
    reconciler.subscribe(notifier.on_publish)

    app.state.reconciler = reconciler
    app.state.store = store
    app.state.change_feed = change_feed
    app.state.notifier = notifier
    app.state.broadcaster = broadcaster
    app.state.feedback = FeedbackSuggestionService()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "version": settings.app_version}

    return app
