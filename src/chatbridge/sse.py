"""Server-Sent Events encoding for translated events."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

from chatbridge.events import ChunkEvent, OutgoingEvent, TerminalEvent

DONE_SENTINEL = "data: [DONE]\n\n"

def encode_event(event: OutgoingEvent) -> str:
    """Render one event as an OpenAI-style ``data:`` record."""
    if isinstance(event, TerminalEvent):
        return DONE_SENTINEL
    if isinstance(event, ChunkEvent):
        return f"data: {json.dumps(event.chunk.to_dict())}\n\n"
    raise TypeError(f"Cannot encode {type(event).__name__}")


async def sse_generator(
    event_stream: AsyncIterator[OutgoingEvent],
) -> AsyncIterator[str]:
    """Convert an OutgoingEvent async iterator into SSE-formatted strings."""
    async for event in event_stream:
        yield encode_event(event)
