from chatbridge.chunks import ClientChunk, ClientResponse, map_stop_reason
from chatbridge.events import ChunkEvent, OutgoingEvent, TerminalEvent
from chatbridge.instrumentation import instrument, uninstrument
from chatbridge.metrics import ExchangeMetrics
from chatbridge.relay import (
    AnthropicRelay,
    AuthenticationRequired,
    RelayError,
    UpstreamAuthenticationError,
    UpstreamError,
    prepare_request,
)
from chatbridge.snapshot import to_client_response
from chatbridge.sse import DONE_SENTINEL, encode_event, sse_generator
from chatbridge.tracker import ToolCall, ToolCallAccumulator
from chatbridge.translator import ExchangeState, StreamTranslator, process_fragment
from chatbridge.upstream import UpstreamEvent, UpstreamMessage

__all__ = [
    "AnthropicRelay",
    "AuthenticationRequired",
    "ChunkEvent",
    "ClientChunk",
    "ClientResponse",
    "DONE_SENTINEL",
    "ExchangeMetrics",
    "ExchangeState",
    "OutgoingEvent",
    "RelayError",
    "StreamTranslator",
    "TerminalEvent",
    "ToolCall",
    "ToolCallAccumulator",
    "UpstreamAuthenticationError",
    "UpstreamError",
    "UpstreamEvent",
    "UpstreamMessage",
    "encode_event",
    "instrument",
    "map_stop_reason",
    "prepare_request",
    "process_fragment",
    "sse_generator",
    "to_client_response",
    "uninstrument",
]
