import asyncio
import contextlib
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from ranking_engine.api.broadcaster import NotableEventBroadcaster
from ranking_engine.api.deps import get_broadcaster

router = APIRouter()


@router.get(
    "/recent",
    summary="Get recent notable score changes",
)
async def get_recent_notable(
    limit: int = Query(20, ge=1, le=100),
    broadcaster: NotableEventBroadcaster = Depends(get_broadcaster),
) -> list[dict[str, Any]]:
    return list(broadcaster.recent)[-limit:]


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


async def stop_sender(sender: asyncio.Task) -> None:
    """Cancel the forwarding task and collect its outcome.

    A send that failed after the client closed is expected here, so its
    exception is retrieved and dropped rather than reported by the loop.
    """
    sender.cancel()
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await sender


@router.websocket("/ws")
async def websocket_notable(websocket: WebSocket) -> None:
    """WebSocket endpoint streaming notable score changes as they are published."""
    broadcaster: NotableEventBroadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    queue = broadcaster.connect()
    sender: asyncio.Task | None = None

    try:
        # Send recent events from buffer
        for message in list(broadcaster.recent)[-20:]:
            await websocket.send_json(message)
        sender = asyncio.create_task(_forward(websocket, queue))

        # Keep connection alive until the client goes away
        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(queue)
        if sender is not None:
            await stop_sender(sender)
