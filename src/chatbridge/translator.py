"""Anthropic SSE to OpenAI chunk stream translation.

:class:`StreamTranslator` is fed the upstream body one newline-terminated
slice at a time and returns the chunks to forward for that slice.  All
state for the exchange lives on its :class:`ExchangeState`; nothing is
shared between translators.

Decoding is deliberately forgiving: upstream interleaves ``event:`` lines,
keepalives and comments with the ``data:`` frames, and anything that does
not validate as a frame is dropped without output.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from pydantic import ValidationError

from chatbridge.chunks import (
    ChunkChoice,
    ChunkDelta,
    ClientChunk,
    FunctionDelta,
    ToolCallDelta,
    map_stop_reason,
)
from chatbridge.events import ChunkEvent, OutgoingEvent, TerminalEvent
from chatbridge.metrics import ExchangeMetrics
from chatbridge.tracker import ToolCallAccumulator
from chatbridge.upstream import UpstreamEvent

logger = logging.getLogger(__name__)

IGNORED_EVENT_TYPES = frozenset({"ping", "content_block_stop"})


@dataclass
class ExchangeState:
    """Everything one streamed exchange needs to remember."""

    tool_calls: ToolCallAccumulator = field(default_factory=ToolCallAccumulator)
    metrics: ExchangeMetrics = field(default_factory=ExchangeMetrics)


def parse_line(line: str) -> UpstreamEvent | None:
    """Decode one record, or ``None`` if it is not a usable ``data:`` frame."""
    line = line.strip()
    if not line or line.startswith("event:"):
        return None
    if not line.startswith("data:") or "{" not in line:
        return None
    try:
        return UpstreamEvent.model_validate_json(line[len("data:"):].strip())
    except ValidationError as e:
        logger.debug(f"Dropping undecodable frame {line!r}: {e}")
        return None


def process_fragment(state: ExchangeState, raw_text: str) -> list[OutgoingEvent]:
    """Translate every frame in *raw_text*, in order."""
    results: list[OutgoingEvent] = []
    for line in raw_text.split("\n"):
        event = parse_line(line)
        if event is None:
            continue
        results.extend(_dispatch(state, event))
    return results


def _dispatch(state: ExchangeState, event: UpstreamEvent) -> list[OutgoingEvent]:
    if event.type in IGNORED_EVENT_TYPES:
        return []
    block = event.content_block
    if event.type == "content_block_start" and block is not None and block.type == "text":
        return []

    state.metrics.absorb(event)

    results: list[OutgoingEvent] = []
    chunk = _translate(state, event)
    if chunk is not None:
        results.append(ChunkEvent(chunk=chunk))

    if event.type == "message_stop":
        usage_chunk = state.metrics.to_usage_chunk()
        if usage_chunk is not None:
            results.append(ChunkEvent(chunk=usage_chunk))
        results.append(TerminalEvent())
    return results


def _translate(state: ExchangeState, event: UpstreamEvent) -> ClientChunk | None:
    block = event.content_block
    delta = event.delta
    index = event.index if event.index is not None else 0

    if event.type == "message_start" and event.message is not None:
        return _chunk(state, ChunkDelta(role="assistant", content=""))

    if event.type == "content_block_start" and block is not None and block.type == "tool_use":
        logger.debug(f"Tool block {index} started: {block.name} ({block.id})")
        state.tool_calls.start(index, block.id, block.name)
        return _chunk(state, ChunkDelta(tool_calls=[ToolCallDelta(
            index=index, id=block.id, type="function",
            function=FunctionDelta(name=block.name, arguments=""),
        )]))

    if event.type == "content_block_delta" and delta is not None and delta.partial_json:
        suffix = state.tool_calls.feed(index, delta.partial_json)
        if suffix is None:
            return None
        logger.debug(f"Tool block {index}: {delta.partial_json!r} -> {suffix!r}")
        return _chunk(state, ChunkDelta(tool_calls=[ToolCallDelta(
            index=index, function=FunctionDelta(arguments=suffix),
        )]))

    if event.type == "content_block_delta" and delta is not None and delta.text:
        return _chunk(state, ChunkDelta(content=delta.text))

    if event.type == "message_delta" and delta is not None and delta.stop_reason:
        return _chunk(
            state, ChunkDelta(), finish_reason=map_stop_reason(delta.stop_reason),
        )

    return None


def _chunk(
    state: ExchangeState, delta: ChunkDelta, finish_reason: str | None = None,
) -> ClientChunk:
    return ClientChunk(
        id=state.metrics.chunk_id(),
        created=int(time.time()),
        model=state.metrics.chunk_model(),
        choices=[ChunkChoice(delta=delta, finish_reason=finish_reason)],
    )


class StreamTranslator:
    """Owns the :class:`ExchangeState` of a single streamed response.

    Example::

        translator = StreamTranslator()
        async for line in response.aiter_lines():
            for event in translator.process(line + "\\n"):
                ...
    """

    def __init__(self) -> None:
        self.state = ExchangeState()
        self.finished = False

    @property
    def metrics(self) -> ExchangeMetrics:
        return self.state.metrics

    def process(self, raw_text: str) -> list[OutgoingEvent]:
        events = process_fragment(self.state, raw_text)
        if any(isinstance(e, TerminalEvent) for e in events):
            self.finished = True
        return events
