"""Token and identity bookkeeping for one streamed exchange."""

from __future__ import annotations

import time
from dataclasses import dataclass

from chatbridge.chunks import (
    DEFAULT_MODEL,
    ChunkChoice,
    ClientChunk,
    fallback_id,
    to_client_id,
    usage_from_counts,
)
from chatbridge.upstream import UpstreamEvent, UpstreamUsage


@dataclass
class ExchangeMetrics:
    """Running totals for an exchange.

    Counters only ever grow: upstream reports usage on ``message_start``
    and again on ``message_delta``, and each report is added as-is.
    """

    model: str = ""
    stop_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0
    message_id: str | None = None
    client_id: str | None = None

    @property
    def has_tokens(self) -> bool:
        return self.input_tokens > 0 or self.output_tokens > 0

    def absorb(self, event: UpstreamEvent) -> None:
        """Fold every usage, model and stop-reason field of *event* in."""
        message = event.message
        if event.type == "message_start" and message is not None:
            self.message_id = message.id
            self.client_id = to_client_id(message.id)
        if message is not None and message.model:
            self.model = message.model
        if event.model:
            self.model = event.model

        if event.stop_reason:
            self.stop_reason = event.stop_reason
        if event.delta is not None and event.delta.stop_reason:
            self.stop_reason = event.delta.stop_reason
        if message is not None and message.stop_reason:
            self.stop_reason = message.stop_reason

        self._add_usage(event.usage)
        if message is not None:
            self._add_usage(message.usage)

    def _add_usage(self, usage: UpstreamUsage | None) -> None:
        if usage is None:
            return
        self.input_tokens += usage.input_tokens or 0
        self.output_tokens += usage.output_tokens or 0
        self.cache_creation_input_tokens += usage.cache_creation_input_tokens or 0
        self.cache_read_input_tokens += usage.cache_read_input_tokens or 0

    def chunk_id(self) -> str:
        return self.client_id or fallback_id()

    def chunk_model(self) -> str:
        return self.model or DEFAULT_MODEL

    def to_usage_chunk(self) -> ClientChunk | None:
        """Usage-only chunk, or ``None`` if nothing was ever counted."""
        if not self.has_tokens:
            return None
        return ClientChunk(
            id=self.chunk_id(),
            created=int(time.time()),
            model=self.chunk_model(),
            choices=[ChunkChoice()],
            usage=usage_from_counts(self.input_tokens, self.output_tokens),
        )
