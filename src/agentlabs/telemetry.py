# src/agentlabs/telemetry.py
"""
GenAI telemetry for agent runs and tool calls, on OpenTelemetry.

TelemetryMiddleware opens a `gen_ai.agent.run` span per run and a
`gen_ai.tool.call` span per tool invocation (nested under the run) and feeds
run/tool counters and token histograms. Where the data goes is decided by the
providers handed in; build_providers() wires console exporters for the labs.
"""
from __future__ import annotations
import logging
import sys
from typing import Any, Iterator, List, Optional, Tuple

from opentelemetry import context as otel_context
from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor, SpanExporter
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from .agents.agent import as_update_stream
from .agents.middleware import AgentMiddleware, AgentRunContext, FunctionInvocationContext, FunctionMiddleware
from .core.messages import UsageDetails

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "agentlabs"

AGENT_RUNS = "gen_ai.operation.invocations"
TOOL_CALLS = "gen_ai.tool.invocations"
INPUT_TOKENS = "gen_ai.response.usage.input_tokens"
OUTPUT_TOKENS = "gen_ai.response.usage.output_tokens"
TOTAL_TOKENS = "gen_ai.response.usage.total_tokens"

_PRIMITIVES = (str, bool, int, float)


def build_providers(
    service_name: str,
    *,
    system: Optional[str] = None,
    model: Optional[str] = None,
    span_exporter: Optional[SpanExporter] = None,
    metric_reader: Optional[MetricReader] = None,
) -> Tuple[TracerProvider, MeterProvider]:
    """Tracer and meter providers exporting to the console unless told otherwise."""
    attributes = {"service.name": service_name}
    if system:
        attributes["gen_ai.system"] = system.lower()
    if model:
        attributes["gen_ai.request.model"] = model
    resource = Resource.create(attributes)

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(SimpleSpanProcessor(span_exporter or ConsoleSpanExporter(out=sys.stdout)))

    reader = metric_reader or PeriodicExportingMetricReader(ConsoleMetricExporter(out=sys.stdout))
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    return tracer_provider, meter_provider


def _attribute(value: Any) -> Any:
    return value if isinstance(value, _PRIMITIVES) else str(value)


class TelemetryMiddleware(AgentMiddleware, FunctionMiddleware):
    """Records a span per agent run and per tool call, plus run/tool/token metrics."""

    def __init__(
        self,
        system: str,
        model: str,
        *,
        tracer_provider: Optional[TracerProvider] = None,
        meter_provider: Optional[MeterProvider] = None,
        capture_content: bool = False,
    ):
        self.system = system.lower()
        self.model = model
        self.capture_content = capture_content
        # None falls back to the globally registered providers
        self.tracer_provider = tracer_provider
        self.meter_provider = meter_provider

        self.tracer = trace.get_tracer(INSTRUMENTATION_NAME, tracer_provider=tracer_provider)
        meter = metrics.get_meter(INSTRUMENTATION_NAME, meter_provider=meter_provider)
        self.runs = meter.create_counter(AGENT_RUNS, unit="{run}", description="Total GenAI agent runs executed.")
        self.tool_calls = meter.create_counter(TOOL_CALLS, unit="{call}", description="Total tool invocations by agents.")
        self.input_tokens = meter.create_histogram(INPUT_TOKENS, unit="{token}", description="Input tokens consumed per agent response.")
        self.output_tokens = meter.create_histogram(OUTPUT_TOKENS, unit="{token}", description="Output tokens produced per agent response.")
        self.total_tokens = meter.create_histogram(TOTAL_TOKENS, unit="{token}", description="Total tokens observed per agent response.")

    def process(self, context: Any, next: Any) -> None:
        if isinstance(context, FunctionInvocationContext):
            self._process_function(context, next)
        else:
            self._process_run(context, next)

    # ----- agent runs -----

    def _metric_attributes(self, context: AgentRunContext) -> dict:
        return {
            "gen_ai.system": self.system,
            "gen_ai.request.model": self.model,
            "gen_ai.agent.name": getattr(context.agent, "name", None) or "",
        }

    def _describe_request(self, span: Span, context: AgentRunContext) -> None:
        for key, value in self._metric_attributes(context).items():
            span.set_attribute(key, value)
        span.set_attribute("gen_ai.operation.name", "invoke_agent")
        opts = context.options
        if opts is not None and opts.max_output_tokens is not None:
            span.set_attribute("gen_ai.request.max_output_tokens", opts.max_output_tokens)
        for m in context.messages:
            attrs = {"gen_ai.message.role": m.role}
            if self.capture_content:
                attrs["gen_ai.message.content"] = m.text
            span.add_event("gen_ai.user.message", attributes=attrs)

    def _record_response(
        self,
        span: Span,
        context: AgentRunContext,
        text: str,
        usage: Optional[UsageDetails],
        response_id: Optional[str],
    ) -> None:
        attrs = self._metric_attributes(context)
        self.runs.add(1, attributes=attrs)
        if response_id:
            span.set_attribute("gen_ai.response.id", response_id)
        event = {"gen_ai.message.role": "assistant"}
        if self.capture_content:
            event["gen_ai.message.content"] = text
        span.add_event("gen_ai.assistant.message", attributes=event)
        if usage is None:
            return
        for value, hist, key in (
            (usage.input_token_count, self.input_tokens, INPUT_TOKENS),
            (usage.output_token_count, self.output_tokens, OUTPUT_TOKENS),
            (usage.total_token_count, self.total_tokens, TOTAL_TOKENS),
        ):
            if value > 0:
                hist.record(value, attributes=attrs)
                span.set_attribute(key, value)

    def _process_run(self, context: AgentRunContext, next: Any) -> None:
        if context.is_streaming:
            next(context)
            context.result = self._traced_stream(context, context.result)
            return

        with self.tracer.start_as_current_span("gen_ai.agent.run", kind=SpanKind.CLIENT) as span:
            self._describe_request(span, context)
            try:
                next(context)
            except Exception as e:
                span.set_attribute("error.type", type(e).__name__)
                raise
            result = context.result
            self._record_response(span, context, result.text, result.usage, result.response_id)

    def _traced_stream(self, context: AgentRunContext, result: Any) -> Iterator[Any]:
        # Span starts on the first pull, so a stream nobody reads leaves nothing open
        span = self.tracer.start_span("gen_ai.agent.run", kind=SpanKind.CLIENT)
        span_context = trace.set_span_in_context(span)
        self._describe_request(span, context)

        updates = iter(as_update_stream(result))
        parts: List[str] = []
        usage: Optional[UsageDetails] = None
        response_id: Optional[str] = None
        completed = False
        try:
            while True:
                # Current only while the inner stream runs, so tool spans nest
                # under the run and nothing leaks to the consumer between pulls
                token = otel_context.attach(span_context)
                try:
                    u = next(updates)
                except StopIteration:
                    break
                finally:
                    otel_context.detach(token)
                if u.text:
                    parts.append(u.text)
                if u.usage is not None:
                    usage = u.usage if usage is None else usage + u.usage
                response_id = u.response_id or response_id
                yield u
            completed = True
        except GeneratorExit:
            # Consumer stopped reading; not an error
            raise
        except Exception as e:
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
        finally:
            close = getattr(updates, "close", None)
            if close is not None:
                close()
            if completed:
                self._record_response(span, context, "".join(parts), usage, response_id)
            span.end()

    # ----- tool calls -----

    def _process_function(self, context: FunctionInvocationContext, next: Any) -> None:
        name = getattr(context.function, "name", "unknown")
        self.tool_calls.add(1, attributes={"tool.name": name})
        logger.info("tool called: %s(%s)", name, context.arguments)
        with self.tracer.start_as_current_span("gen_ai.tool.call") as span:
            span.set_attribute("gen_ai.tool.name", name)
            for k, v in context.arguments.items():
                span.set_attribute(f"gen_ai.tool.parameter.{k}", _attribute(v))
            next(context)
            result = str(context.result)
            span.set_attribute("gen_ai.tool.result.length", len(result))
            span.add_event("gen_ai.tool.completed", attributes={"result.preview": result[:50]})

    def flush(self, timeout_millis: int = 5000) -> bool:
        """Push buffered spans and metrics to the exporters."""
        ok = True
        tracer_provider = self.tracer_provider or trace.get_tracer_provider()
        meter_provider = self.meter_provider or metrics.get_meter_provider()
        for provider in (tracer_provider, meter_provider):
            force_flush = getattr(provider, "force_flush", None)
            if force_flush is not None:
                ok = bool(force_flush(timeout_millis)) and ok
        return ok

    def shutdown(self) -> None:
        for provider in (self.tracer_provider, self.meter_provider):
            if provider is not None:
                provider.shutdown()
