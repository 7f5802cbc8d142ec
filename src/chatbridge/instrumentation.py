"""Optional OpenTelemetry instrumentation for chatbridge.

Call ``chatbridge.instrument()`` once at startup to enable tracing.
Requires ``opentelemetry-api`` to be installed; the relay works
identically without it.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "chatbridge") -> None:
    """Enable OpenTelemetry tracing for relayed exchanges.

    Call once at startup, after configuring your TracerProvider.
    Requires ``opentelemetry-api``: ``pip install chatbridge[otel]``

    Example::

        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider

        trace.set_tracer_provider(TracerProvider())

        import chatbridge
        chatbridge.instrument()

    Args:
        tracer_name: Name passed to ``trace.get_tracer()``.

    Raises:
        ImportError: If ``opentelemetry-api`` is not installed.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "opentelemetry-api is required for instrumentation. "
            "Install it with: pip install chatbridge[otel]"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured, spans will be "
            "discarded. Set up a TracerProvider to export "
            "traces."
        )
    else:
        logger.info("chatbridge instrumentation enabled")


def uninstrument() -> None:
    """Disable OpenTelemetry tracing."""
    global _tracer
    _tracer = None


@asynccontextmanager
async def exchange_span(model: str, streaming: bool):
    """Wrap one relayed exchange in a ``chat`` span."""
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    with _tracer.start_as_current_span(
        f"chat {model}",
        kind=SpanKind.CLIENT,
        attributes={
            "gen_ai.operation.name": "chat",
            "gen_ai.provider.name": "anthropic",
            "gen_ai.request.model": model,
            "chatbridge.streaming": streaming,
        },
    ) as span:
        yield span


def record_usage(span, metrics) -> None:
    """Copy token counts, response model and finish reason onto a span.

    *metrics* is an :class:`~chatbridge.metrics.ExchangeMetrics`.
    """
    if span is None or metrics is None:
        return
    span.set_attribute("gen_ai.usage.input_tokens", metrics.input_tokens)
    span.set_attribute("gen_ai.usage.output_tokens", metrics.output_tokens)
    span.set_attribute(
        "gen_ai.usage.cache_creation.input_tokens",
        metrics.cache_creation_input_tokens,
    )
    span.set_attribute(
        "gen_ai.usage.cache_read.input_tokens",
        metrics.cache_read_input_tokens,
    )
    if metrics.model:
        span.set_attribute("gen_ai.response.model", metrics.model)
    if metrics.stop_reason:
        span.set_attribute(
            "gen_ai.response.finish_reasons", [metrics.stop_reason]
        )


def record_error(span, exception: BaseException) -> None:
    """Record an exception and set ERROR status on a span.

    No-ops when *span* is ``None`` (tracing disabled).
    """
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, str(exception))
    span.record_exception(exception)
    span.set_attribute(
        "error.type", type(exception).__qualname__
    )
