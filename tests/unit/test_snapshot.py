"""Unit tests for whole-response translation."""

import json

import pytest

from chatbridge.snapshot import to_client_response
from chatbridge.upstream import UpstreamMessage


def anthropic_response(content, stop_reason="end_turn", **extra):
    return {
        "id": "msg_01abc",
        "type": "message",
        "role": "assistant",
        "model": "claude-sonnet-4",
        "content": content,
        "stop_reason": stop_reason,
        "usage": {"input_tokens": 20, "output_tokens": 8},
        **extra,
    }


def test_text_blocks_are_concatenated():
    resp = to_client_response(anthropic_response([
        {"type": "text", "text": "Hello, "},
        {"type": "text", "text": "world"},
    ]))
    choice = resp.choices[0]

    assert choice.message.content == "Hello, world"
    assert choice.message.tool_calls == []
    assert choice.message.role == "assistant"
    assert choice.finish_reason == "stop"


def test_tool_block_becomes_tool_call():
    resp = to_client_response(anthropic_response(
        [{"type": "tool_use", "id": "t1", "name": "lookup", "input": {"q": "x"}}],
        stop_reason="tool_use",
    ))
    message = resp.choices[0].message

    assert len(message.tool_calls) == 1
    tc = message.tool_calls[0]
    assert (tc.id, tc.type, tc.function.name) == ("t1", "function", "lookup")
    assert json.loads(tc.function.arguments) == {"q": "x"}
    assert tc.function.arguments == json.dumps({"q": "x"})
    assert message.content is None
    assert resp.choices[0].finish_reason == "tool_calls"


def test_tool_blocks_missing_id_or_name_are_skipped():
    resp = to_client_response(anthropic_response([
        {"type": "tool_use", "name": "no_id", "input": {}},
        {"type": "tool_use", "id": "t2", "input": {}},
        {"type": "tool_use", "id": "t3", "name": "kept"},
    ]))
    calls = resp.choices[0].message.tool_calls

    assert [c.id for c in calls] == ["t3"]
    assert calls[0].function.arguments == "{}"


def test_mixed_blocks_keep_array_order():
    resp = to_client_response(anthropic_response([
        {"type": "text", "text": "a"},
        {"type": "tool_use", "id": "t1", "name": "first", "input": {}},
        {"type": "text", "text": "b"},
        {"type": "tool_use", "id": "t2", "name": "second", "input": {"n": 1}},
    ]))
    message = resp.choices[0].message

    assert message.content == "ab"
    assert [c.function.name for c in message.tool_calls] == ["first", "second"]


def test_empty_text_is_absent():
    resp = to_client_response(anthropic_response([{"type": "text", "text": ""}]))
    assert resp.choices[0].message.content is None
    assert resp.to_dict()["choices"][0]["message"]["content"] is None


def test_ids_model_and_usage():
    resp = to_client_response(anthropic_response([]))

    assert resp.id == "chatcmpl-01abc"
    assert resp.object == "chat.completion"
    assert resp.model == "claude-sonnet-4"
    assert resp.to_dict()["usage"] == {
        "prompt_tokens": 20,
        "completion_tokens": 8,
        "total_tokens": 28,
    }


def test_missing_fields_fall_back():
    resp = to_client_response({"content": []})

    assert resp.id.startswith("chatcmpl-")
    assert resp.model == "claude-unknown"
    assert resp.usage.total_tokens == 0
    assert resp.choices[0].finish_reason is None


@pytest.mark.parametrize("stop_reason, expected", [
    ("end_turn", "stop"),
    ("tool_use", "tool_calls"),
    ("max_tokens", "max_tokens"),
    (None, None),
])
def test_finish_reason_mapping(stop_reason, expected):
    resp = to_client_response(anthropic_response([], stop_reason=stop_reason))
    assert resp.choices[0].finish_reason == expected


def test_accepts_parsed_message():
    message = UpstreamMessage.model_validate(
        anthropic_response([{"type": "text", "text": "ok"}])
    )
    assert to_client_response(message).choices[0].message.content == "ok"


@pytest.mark.parametrize("extra", [{"content": None}, {}])
def test_null_or_missing_content(extra):
    body = {
        "id": "msg_1",
        "model": "m",
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 2, "output_tokens": 1},
        **extra,
    }
    resp = to_client_response(body)

    assert resp.choices[0].message.content is None
    assert resp.choices[0].message.tool_calls == []
    assert resp.choices[0].finish_reason == "stop"
    assert resp.usage.total_tokens == 3


def test_malformed_blocks_are_skipped():
    resp = to_client_response(anthropic_response([
        "junk",
        {"text": "no type"},
        {"type": "text", "text": "kept"},
    ]))
    assert resp.choices[0].message.content == "kept"
