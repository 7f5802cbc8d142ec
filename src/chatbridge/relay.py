"""Relay OpenAI-style chat requests to the Anthropic Messages API.

:class:`AnthropicRelay` prepares the request, authenticates it with a
bearer token from the caller's credential provider, and returns either a
stream of SSE records or a whole response.  Requests that already speak
the Anthropic format are passed through untouched.
"""

import copy
import inspect
import logging
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from chatbridge.chunks import ClientResponse
from chatbridge.instrumentation import exchange_span, record_error, record_usage
from chatbridge.snapshot import to_client_response
from chatbridge.sse import encode_event
from chatbridge.translator import StreamTranslator

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_BETA = "oauth-2025-04-20,fine-grained-tool-streaming-2025-05-14"
DEFAULT_USER_AGENT = "chatbridge/0.1.0"

IDENTITY_PROMPT = "You are Claude Code, Anthropic's official CLI for Claude."

# OpenAI request parameters the Messages API rejects.
UNSUPPORTED_PARAMS = (
    "stream_options",
    "frequency_penalty",
    "presence_penalty",
    "logprobs",
    "top_logprobs",
    "logit_bias",
    "n",
    "seed",
    "user",
    "service_tier",
    "parallel_tool_calls",
)

MAX_TOKENS_BY_FAMILY = (
    ("opus", 32_000),
    ("sonnet", 64_000),
)

CredentialProvider = Callable[[], str | None | Awaitable[str | None]]


class RelayError(Exception):
    """Base class for failures raised before any output is produced."""


class AuthenticationRequired(RelayError):
    """The credential provider had no valid token."""


class UpstreamError(RelayError):
    """Upstream answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Upstream returned {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class UpstreamAuthenticationError(UpstreamError):
    """Upstream rejected the token (HTTP 401)."""


@dataclass
class PreparedRequest:
    body: dict[str, Any]
    translate: bool
    streaming: bool


def _first_system_text(system: Any) -> str:
    if isinstance(system, str):
        return system
    if isinstance(system, list) and system and isinstance(system[0], dict):
        return system[0].get("text") or ""
    return ""


def prepare_request(
    body: dict[str, Any], identity_prompt: str = IDENTITY_PROMPT,
) -> PreparedRequest:
    """Rewrite an inbound body for the Messages API.

    A request whose first system block is not the identity prompt is
    treated as an OpenAI chat request: its ``system`` messages are moved
    into ``system`` blocks and the response will be translated back.
    *body* is not modified.
    """
    body = copy.deepcopy(body)
    streaming = body.get("stream") is True
    for param in UNSUPPORTED_PARAMS:
        body.pop(param, None)

    messages = body.get("messages")
    if identity_prompt in _first_system_text(body.get("system")) or messages is None:
        return PreparedRequest(body=body, translate=False, streaming=streaming)

    system = body.get("system") or []
    if isinstance(system, str):
        system = [{"type": "text", "text": system}]
    system.insert(0, {"type": "text", "text": identity_prompt})
    for msg in messages:
        if msg.get("role") == "system":
            system.append({"type": "text", "text": msg.get("content") or ""})
    body["system"] = system
    body["messages"] = [m for m in messages if m.get("role") != "system"]
    body.setdefault("metadata", {})

    model = str(body.get("model", ""))
    for family, max_tokens in MAX_TOKENS_BY_FAMILY:
        if family in model:
            body["max_tokens"] = max_tokens

    return PreparedRequest(body=body, translate=True, streaming=streaming)


class AnthropicRelay:
    """Sends prepared requests upstream and translates what comes back.

    Args:
        credentials: Callable returning a bearer token (or ``None``);
            may be sync or async.  Called once per request.
        base_url: Upstream root, defaults to ``ANTHROPIC_BASE_URL``.
        api_version: ``anthropic-version`` header, defaults to
            ``ANTHROPIC_VERSION``.
        beta: ``anthropic-beta`` header, defaults to ``ANTHROPIC_BETA``.
        timeout: Transport timeout in seconds.
        client: Pre-built ``httpx.AsyncClient`` (tests pass one with a
            mock transport).
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        base_url: str | None = None,
        api_version: str | None = None,
        beta: str | None = None,
        timeout: float = 600.0,
        client: httpx.AsyncClient | None = None,
        identity_prompt: str = IDENTITY_PROMPT,
    ):
        if not base_url:
            base_url = os.getenv("ANTHROPIC_BASE_URL", DEFAULT_BASE_URL)
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version or os.getenv(
            "ANTHROPIC_VERSION", DEFAULT_API_VERSION
        )
        self.beta = beta or os.getenv("ANTHROPIC_BETA", DEFAULT_BETA)
        self.credentials = credentials
        self.identity_prompt = identity_prompt
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/v1/messages"

    def headers(self, token: str, streaming: bool) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "authorization": f"Bearer {token}",
            "anthropic-beta": self.beta,
            "anthropic-version": self.api_version,
            "user-agent": DEFAULT_USER_AGENT,
            "accept": "text/event-stream" if streaming else "application/json",
        }

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _token(self) -> str:
        token = self.credentials()
        if inspect.isawaitable(token):
            token = await token
        if not token:
            raise AuthenticationRequired(
                "No valid upstream token; authenticate first"
            )
        return token

    def _error(self, response: httpx.Response) -> UpstreamError:
        body = response.text
        logger.warning(f"Upstream error {response.status_code}: {body}")
        if response.status_code == 401:
            return UpstreamAuthenticationError(response.status_code, body)
        return UpstreamError(response.status_code, body)

    async def stream(self, body: dict[str, Any]) -> AsyncIterator[str]:
        """Yield SSE records for a streaming request.

        In translation mode every record is an OpenAI ``data:`` chunk and
        the last one is ``data: [DONE]``.  If upstream closes early no
        sentinel is sent.
        """
        prepared = prepare_request(body, self.identity_prompt)
        token = await self._token()
        model = str(prepared.body.get("model", ""))
        logger.info(f"Streaming {model} (translate={prepared.translate})")

        async with exchange_span(model, streaming=True) as span:
            try:
                async with self.client.stream(
                    "POST", self.messages_url,
                    headers=self.headers(token, streaming=True),
                    json=prepared.body,
                ) as response:
                    if response.is_error:
                        await response.aread()
                        raise self._error(response)

                    if not prepared.translate:
                        async for text in response.aiter_text():
                            yield text
                        return

                    translator = StreamTranslator()
                    async for line in response.aiter_lines():
                        for event in translator.process(line):
                            yield encode_event(event)
                        if translator.finished:
                            break
                    record_usage(span, translator.metrics)
                    logger.info(
                        f"Finished {translator.metrics.client_id}: "
                        f"{translator.metrics.input_tokens} in, "
                        f"{translator.metrics.output_tokens} out"
                    )
            except Exception as e:
                record_error(span, e)
                raise

    async def complete(self, body: dict[str, Any]) -> ClientResponse | dict[str, Any]:
        """Send a non-streaming request and return the whole response."""
        prepared = prepare_request(body, self.identity_prompt)
        token = await self._token()
        model = str(prepared.body.get("model", ""))
        logger.info(f"Completing {model} (translate={prepared.translate})")

        async with exchange_span(model, streaming=False) as span:
            try:
                response = await self.client.post(
                    self.messages_url,
                    headers=self.headers(token, streaming=False),
                    json=prepared.body,
                )
                if response.is_error:
                    raise self._error(response)
                data = response.json()
            except Exception as e:
                record_error(span, e)
                raise

        if not prepared.translate:
            return data
        return to_client_response(data)
