from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from neuralmetrics.api.dependencies import get_subscriber_channel
from neuralmetrics.realtime.push import SubscriberChannel

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


async def subscriber_frames(
    request: Request, channel: SubscriberChannel
) -> AsyncIterator[str]:
    """Relay channel frames until the client goes away."""
    try:
        async for frame in channel.frames():
            if await request.is_disconnected():
                break
            yield frame
    finally:
        channel.close()


@router.get("/stream", summary="Live metric updates as a text event stream")
async def stream(
    request: Request,
    channel: SubscriberChannel = Depends(get_subscriber_channel),
):
    return StreamingResponse(
        subscriber_frames(request, channel),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
