"""Whole-response translation for non-streaming requests."""

import json
import time
from typing import Any

from chatbridge.chunks import (
    DEFAULT_MODEL,
    ClientResponse,
    FunctionCall,
    ResponseChoice,
    ResponseMessage,
    ToolCall,
    map_stop_reason,
    to_client_id,
    usage_from_counts,
)
from chatbridge.upstream import UpstreamMessage


def to_client_response(response: UpstreamMessage | dict[str, Any]) -> ClientResponse:
    """Convert a complete Anthropic message into a ``chat.completion``.

    Text blocks are joined in order; ``tool_use`` blocks lacking an id or
    a name are dropped.  ``content`` stays ``None`` when no text came back.
    """
    if not isinstance(response, UpstreamMessage):
        response = UpstreamMessage.model_validate(response)

    text = ""
    tool_calls: list[ToolCall] = []
    for block in response.content or []:
        if block.type == "text":
            text += block.text or ""
        elif block.type == "tool_use" and block.id and block.name:
            tool_calls.append(ToolCall(
                id=block.id,
                function=FunctionCall(
                    name=block.name,
                    arguments=json.dumps(block.input or {}),
                ),
            ))

    usage = response.usage
    input_tokens = (usage.input_tokens or 0) if usage else 0
    output_tokens = (usage.output_tokens or 0) if usage else 0

    return ClientResponse(
        id=to_client_id(response.id),
        created=int(time.time()),
        model=response.model or DEFAULT_MODEL,
        choices=[ResponseChoice(
            message=ResponseMessage(
                content=text or None,
                tool_calls=tool_calls,
            ),
            finish_reason=map_stop_reason(response.stop_reason),
        )],
        usage=usage_from_counts(input_tokens, output_tokens),
    )
