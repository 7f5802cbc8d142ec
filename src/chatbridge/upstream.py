"""Typed view of the Anthropic Messages API payloads.

One :class:`UpstreamEvent` is validated per ``data:`` line of the
streaming body.  Every field is optional because the frame kinds share a
single envelope; unknown fields are ignored so new upstream additions do
not break decoding.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class UpstreamUsage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None


class ContentBlock(BaseModel):
    """A ``text`` or ``tool_use`` block, streamed or whole."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    id: str | None = None
    name: str | None = None
    text: str | None = None
    input: Any = None


class UpstreamMessage(BaseModel):
    """Message envelope from ``message_start`` or a whole response."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    model: str | None = None
    content: list[ContentBlock] | None = None
    stop_reason: str | None = None
    usage: UpstreamUsage | None = None

    @field_validator("content", mode="before")
    @classmethod
    def drop_unusable_blocks(cls, value: Any) -> Any:
        # Blocks without a type carry nothing to translate.
        if not isinstance(value, list):
            return None
        return [
            b for b in value
            if isinstance(b, ContentBlock) or (isinstance(b, dict) and b.get("type"))
        ]


class EventDelta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    text: str | None = None
    partial_json: str | None = None
    stop_reason: str | None = None


class UpstreamEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = ""
    index: int | None = None
    message: UpstreamMessage | None = None
    content_block: ContentBlock | None = None
    delta: EventDelta | None = None
    model: str | None = None
    stop_reason: str | None = None
    usage: UpstreamUsage | None = None

    @field_validator("message", "content_block", "delta", "usage", mode="before")
    @classmethod
    def drop_non_objects(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, BaseModel)) else None
