import json

import httpx
import pytest

from chatbridge.events import ChunkEvent, TerminalEvent


# ---------------------------------------------------------------------------
# Upstream frame builders (mirror the Anthropic SSE shape)
# ---------------------------------------------------------------------------

def frame(event_type: str, **payload) -> str:
    """One ``event:`` / ``data:`` record as upstream sends it."""
    data = {"type": event_type, **payload}
    return f"event: {event_type}\ndata: {json.dumps(data)}\n\n"


def message_start(
    msg_id: str = "msg_01abc",
    model: str = "claude-sonnet-4",
    input_tokens: int = 10,
    output_tokens: int = 1,
) -> str:
    return frame("message_start", message={
        "id": msg_id,
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": [],
        "stop_reason": None,
        "usage": {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        },
    })


def text_start(index: int = 0) -> str:
    return frame("content_block_start", index=index, content_block={
        "type": "text", "text": "",
    })


def text_delta(text: str, index: int = 0) -> str:
    return frame("content_block_delta", index=index, delta={
        "type": "text_delta", "text": text,
    })


def tool_start(index: int, call_id: str, name: str) -> str:
    return frame("content_block_start", index=index, content_block={
        "type": "tool_use", "id": call_id, "name": name, "input": {},
    })


def json_delta(partial_json: str, index: int) -> str:
    return frame("content_block_delta", index=index, delta={
        "type": "input_json_delta", "partial_json": partial_json,
    })


def block_stop(index: int = 0) -> str:
    return frame("content_block_stop", index=index)


def message_delta(stop_reason: str | None = "end_turn", output_tokens: int = 5) -> str:
    return frame(
        "message_delta",
        delta={"stop_reason": stop_reason, "stop_sequence": None},
        usage={"output_tokens": output_tokens},
    )


def message_stop() -> str:
    return frame("message_stop")


def ping() -> str:
    return frame("ping")


def text_stream(*parts: str, stop_reason: str = "end_turn") -> list[str]:
    """A complete text-only exchange, one frame per list item."""
    return [
        message_start(),
        text_start(0),
        *[text_delta(p, 0) for p in parts],
        block_stop(0),
        message_delta(stop_reason),
        message_stop(),
    ]


def tool_stream() -> list[str]:
    """Text followed by one tool call whose arguments arrive in pieces."""
    return [
        message_start(),
        text_start(0),
        text_delta("Let me look.", 0),
        block_stop(0),
        tool_start(1, "toolu_01", "lookup"),
        json_delta('{"q": ', 1),
        json_delta('"x"}', 1),
        block_stop(1),
        message_delta("tool_use"),
        message_stop(),
    ]


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def chunks_of(events) -> list[dict]:
    """Wire dicts of every chunk event, in order."""
    return [e.chunk.to_dict() for e in events if isinstance(e, ChunkEvent)]


def terminal_count(events) -> int:
    return sum(1 for e in events if isinstance(e, TerminalEvent))


def sse_payloads(records: list[str]) -> list:
    """Decode ``data:`` records back into dicts (``[DONE]`` kept as str)."""
    payloads = []
    for record in records:
        assert record.startswith("data: ")
        assert record.endswith("\n\n")
        body = record[len("data: "):].strip()
        payloads.append(body if body == "[DONE]" else json.loads(body))
    return payloads


# ---------------------------------------------------------------------------
# Upstream transport
# ---------------------------------------------------------------------------

class MockUpstream:
    """Records requests and answers with a queued status and body."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: str | bytes = ""
        self.content_type = "text/event-stream"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status_code,
            content=self.body,
            headers={"content-type": self.content_type},
        )

    def respond_stream(self, frames: list[str]) -> None:
        self.body = "".join(frames)
        self.content_type = "text/event-stream"

    def respond_json(self, payload: dict, status_code: int = 200) -> None:
        self.body = json.dumps(payload)
        self.status_code = status_code
        self.content_type = "application/json"

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream():
    return MockUpstream()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def openai_body():
    """An OpenAI-format streaming chat request."""
    return {
        "model": "claude-sonnet-4",
        "stream": True,
        "messages": [
            {"role": "system", "content": "Be terse."},
            {"role": "user", "content": "hi"},
        ],
        "stream_options": {"include_usage": True},
        "presence_penalty": 0.5,
        "n": 1,
    }
