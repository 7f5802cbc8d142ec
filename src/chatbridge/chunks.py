"""OpenAI chat-completions payloads produced by the translators.

``ClientChunk`` is one ``chat.completion.chunk`` record of a streamed
response and ``ClientResponse`` is a whole ``chat.completion``.  Deltas
only carry the fields that changed, so they serialize without ``None``
values; ``finish_reason`` on the choice is always present.
"""

import time
from typing import Any, Literal

from openai.types import CompletionUsage
from pydantic import BaseModel, Field, field_serializer

DEFAULT_MODEL = "claude-unknown"
ID_PREFIX = "chatcmpl-"


def fallback_id() -> str:
    return f"{ID_PREFIX}{int(time.time() * 1000)}"


def to_client_id(message_id: str | None) -> str:
    """Re-prefix an upstream ``msg_`` id into the ``chatcmpl-`` scheme."""
    if not message_id:
        return fallback_id()
    return ID_PREFIX + message_id.replace("msg_", "", 1)


def map_stop_reason(stop_reason: str | None) -> str | None:
    if stop_reason == "end_turn":
        return "stop"
    if stop_reason == "tool_use":
        return "tool_calls"
    return stop_reason


def usage_from_counts(input_tokens: int, output_tokens: int) -> CompletionUsage:
    return CompletionUsage(
        prompt_tokens=input_tokens,
        completion_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
    )


class FunctionDelta(BaseModel):
    name: str | None = None
    arguments: str | None = None


class ToolCallDelta(BaseModel):
    index: int
    id: str | None = None
    type: Literal["function"] | None = None
    function: FunctionDelta | None = None


class ChunkDelta(BaseModel):
    role: str | None = None
    content: str | None = None
    tool_calls: list[ToolCallDelta] | None = None


class ChunkChoice(BaseModel):
    index: int = 0
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    finish_reason: str | None = None

    @field_serializer("delta")
    def serialize_delta(self, delta: ChunkDelta) -> dict:
        return delta.model_dump(exclude_none=True)


class ClientChunk(BaseModel):
    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    choices: list[ChunkChoice]
    usage: CompletionUsage | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form: ``usage`` is left out entirely until it is known."""
        data = self.model_dump(exclude={"usage"})
        if self.usage is not None:
            data["usage"] = self.usage.model_dump(exclude_none=True)
        return data


class FunctionCall(BaseModel):
    name: str
    arguments: str


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class ResponseMessage(BaseModel):
    role: str = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] = []


class ResponseChoice(BaseModel):
    index: int = 0
    message: ResponseMessage
    finish_reason: str | None = None


class ClientResponse(BaseModel):
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[ResponseChoice]
    usage: CompletionUsage

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(exclude={"usage"})
        data["usage"] = self.usage.model_dump(exclude_none=True)
        return data
