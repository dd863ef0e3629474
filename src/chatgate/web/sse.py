from __future__ import annotations
import json
from typing import AsyncIterator, Dict

from chatgate.core.messages import StreamEvent

SSE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(event: StreamEvent) -> str:
    return f"data: {json.dumps(event.payload(), ensure_ascii=False)}\n\n"


async def sse_body(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    """
    Frame events for the response body. When the client disconnects the
    response task is cancelled, which closes ``events`` and the vendor stream
    behind it.
    """
    try:
        async for event in events:
            yield format_event(event)
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()
