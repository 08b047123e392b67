"""
WebSocket change stream.
Clients connect to /api/realtime/{table} and receive one JSON message per
committed change to that table, in commit order.
"""
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
import logging

from portfolio.deps import get_store
from portfolio.store.client import RemoteStore
from portfolio.store.feed import ChangeEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/realtime", tags=["Realtime"])

PUBLIC_TABLES = frozenset({"blog_posts", "blog_comments", "photos", "photo_comments"})


@router.websocket("/{table}")
async def stream_changes(websocket: WebSocket, table: str, store: RemoteStore = Depends(get_store)):
    """
    Forward change events for one table until the client disconnects.
    Contact messages are not streamed; unknown tables are refused with 1008.
    """
    if table not in PUBLIC_TABLES:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async def forward(event: ChangeEvent) -> None:
        await websocket.send_json(jsonable_encoder(event.to_payload()))

    await websocket.accept()
    # Only an accepted socket can be sent to
    subscription = store.feed.subscribe(table, on_change=forward)
    logger.info(f"Realtime client connected to {table}")
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Realtime client disconnected from {table}")
    finally:
        subscription.unsubscribe()
