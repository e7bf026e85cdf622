import asyncio
from collections import deque
from typing import Any

import structlog

from ranking_engine.schemas.leaderboard import NotableEvent

logger = structlog.get_logger()


class NotableEventBroadcaster:
    """Fans notable events out to connected WebSocket clients.

    ``push`` is a synchronous notifier sink; each client drains its own
    queue from its WebSocket handler.
    """

    def __init__(self, buffer_size: int = 100) -> None:
        self.recent: deque[dict[str, Any]] = deque(maxlen=buffer_size)
        self._clients: set[asyncio.Queue] = set()

    def push(self, event: NotableEvent) -> None:
        message = {"type": "notable", **event.model_dump()}
        self.recent.append(message)
        for queue in self._clients:
            queue.put_nowait(message)

    def connect(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._clients.add(queue)
        logger.debug("Notable event client connected", clients=len(self._clients))
        return queue

    def disconnect(self, queue: asyncio.Queue) -> None:
        self._clients.discard(queue)
