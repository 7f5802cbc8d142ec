"""Tool-call argument tracking for a streamed exchange.

Upstream delivers ``partial_json`` either as independent fragments or as
cumulative snapshots, and may switch between the two within one call.
:meth:`ToolCall.resolve` reduces either form to the suffix the client has
not seen yet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class ToolCall:
    """Arguments seen so far for the tool block at one index."""

    id: str = ""
    name: str = ""
    arguments: str = ""

    def resolve(self, fragment: str) -> str:
        """Absorb *fragment* and return the part that is new.

        A fragment that starts with the whole buffer is read as a
        snapshot.  An independent fragment that happens to begin with the
        buffer is misread the same way; upstream gives no way to tell.
        """
        if self.arguments and fragment.startswith(self.arguments):
            suffix = fragment[len(self.arguments):]
            self.arguments = fragment
            return suffix
        self.arguments += fragment
        return fragment


class ToolCallAccumulator:
    """Per-exchange table of :class:`ToolCall` keyed by block index."""

    def __init__(self) -> None:
        self._pending: dict[int, ToolCall] = {}

    def start(self, index: int, call_id: str | None, name: str | None) -> ToolCall:
        if index in self._pending:
            logger.debug(f"Tool block {index} started twice, replacing")
        tc = ToolCall(id=call_id or "", name=name or "")
        self._pending[index] = tc
        return tc

    def get(self, index: int) -> ToolCall | None:
        return self._pending.get(index)

    def feed(self, index: int, fragment: str) -> str | None:
        """Resolve *fragment* for *index*; ``None`` if the index is unknown."""
        tc = self._pending.get(index)
        if tc is None:
            logger.debug(f"Argument delta for unknown tool block {index}")
            return None
        return tc.resolve(fragment)

    def finalize(self) -> list[ToolCall]:
        """Return tool calls in index order."""
        return [self._pending[i] for i in sorted(self._pending)]
