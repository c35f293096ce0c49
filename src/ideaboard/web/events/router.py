"""SSE streaming endpoint."""

from __future__ import annotations

import asyncio
import json

import jwt
from fastapi import APIRouter, HTTPException, Query
from sse_starlette.sse import EventSourceResponse

from .manager import event_manager
from .models import Event

router = APIRouter(prefix="/api/events", tags=["events"])

HEARTBEAT_SECONDS = 30.0


def _owner_from_token(token: str) -> str:
    if not token:
        raise HTTPException(status_code=401, detail="Missing token")

    from ..auth import decode_token

    try:
        owner_id = decode_token(token).get("sub")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token") from None
    if not owner_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return owner_id


@router.get("/stream")
async def event_stream(
    token: str = Query("", description="Bearer token (EventSource can't send headers)"),
):
    """Stream the owner's card changes so other open sessions can refresh.

    Messages are unnamed; the event type is the ``type`` key of the JSON data.
    """
    owner_id = _owner_from_token(token)

    async def generate():
        queue = await event_manager.subscribe(owner_id)
        try:
            while True:
                try:
                    event: Event = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                except TimeoutError:
                    event = Event.heartbeat()
                yield {"data": json.dumps(event.payload())}
        finally:
            await event_manager.unsubscribe(owner_id, queue)

    return EventSourceResponse(generate())
