"""Events emitted by the stream translator."""

from __future__ import annotations

from dataclasses import dataclass

from chatbridge.chunks import ClientChunk


@dataclass
class OutgoingEvent:
    """Base for everything :meth:`StreamTranslator.process` returns."""


@dataclass
class ChunkEvent(OutgoingEvent):
    """One client chunk to forward, in order."""

    chunk: ClientChunk


@dataclass
class TerminalEvent(OutgoingEvent):
    """End of the exchange, forwarded as the ``[DONE]`` sentinel."""
