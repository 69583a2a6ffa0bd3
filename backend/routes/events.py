import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from database import get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Events"])


@router.websocket("/ws")
async def event_stream(
    websocket: WebSocket,
    topics: str | None = None,
    broadcaster=Depends(get_broadcaster),
):
    """
    Pushes `{"event": topic, "data": payload}` frames to connected clients.
    `?topics=new_order,order_update_<id>` narrows the stream.
    """
    wanted = [t.strip() for t in topics.split(",") if t.strip()] if topics else None
    queue = None
    sender = None

    async def forward():
        while True:
            event = await queue.get()
            await websocket.send_json(event)

    try:
        await websocket.accept()
        queue = broadcaster.subscribe(wanted)
        sender = asyncio.create_task(forward())

        # inbound frames are ignored; the loop ends when the client goes away
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        if queue is not None:
            broadcaster.unsubscribe(queue)
        if sender is not None:
            sender.cancel()
            (error,) = await asyncio.gather(sender, return_exceptions=True)
            if isinstance(error, Exception) and not isinstance(error, WebSocketDisconnect):
                logger.warning("WS_STREAM_CLOSED error=%s", error)
