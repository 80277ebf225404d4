"""
SSE Module - Server-Sent Events Router

Realtime sync for dashboards:
- request status changes
- reschedule proposals and answers
- marketplace order updates
"""
import asyncio
import json
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from housing_desk.core.config import settings
from housing_desk.core.logging import get_logger
from housing_desk.core.metrics import sse_connection_closed, sse_connection_opened
from housing_desk.modules.auth.dependencies import CurrentUser
from housing_desk.modules.sse.broker import broker

logger = get_logger(__name__)

router = APIRouter(prefix="/sse", tags=["SSE"])


def format_event(event: dict) -> str:
    """Encode one SSE frame: data: {json}\\n\\n"""
    return f"data: {json.dumps(event, default=str)}\n\n"


async def event_generator(
    request: Request,
    user_id: uuid.UUID,
    role: str,
) -> AsyncGenerator[str, None]:
    """
    Yield queued events, with a heartbeat when the queue is idle.

    Subscribes when the body starts streaming and unsubscribes when it ends.
    """
    subscription = broker.subscribe(user_id, role)
    sse_connection_opened()
    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected", user_id=str(subscription.user_id))
                break

            try:
                event = await asyncio.wait_for(
                    subscription.queue.get(),
                    timeout=settings.sse_heartbeat_seconds,
                )
            except asyncio.TimeoutError:
                event = {
                    "type": "heartbeat",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }

            yield format_event(event)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled", user_id=str(subscription.user_id))
        raise
    finally:
        broker.unsubscribe(subscription)
        sse_connection_closed()


@router.get("/events")
async def event_stream(request: Request, current_user: CurrentUser):
    """
    SSE stream of events for the current user.

    Events:
    - `heartbeat`: connection keepalive
    - `request.updated`: a request changed status
    - `reschedule.updated`: a proposal was created or answered
    - `order.updated`: a marketplace order changed status
    """
    logger.info("SSE stream started", user_id=str(current_user.id))

    return StreamingResponse(
        event_generator(request, current_user.id, current_user.role),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
