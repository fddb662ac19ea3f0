"""Lab 09: spans, token metrics and tool counters around an agent run."""
from __future__ import annotations
from typing import Annotated, Optional

from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.trace.export import SpanExporter

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.agents.tools import function_tool
from agentlabs.config_loader import Settings
from agentlabs.core.messages import ChatOptions
from agentlabs.logging_setup import configure_from_settings
from agentlabs.resolver import load_provider_config
from agentlabs.telemetry import TelemetryMiddleware, build_providers
from .common import start

EVENTS = {
    1950: "Sound systems emerged in Kingston, featuring DJs like Duke Reid and Coxsone Dodd.",
    1962: "Jamaica gained independence. Ska music dominated the airwaves.",
    1968: "Rocksteady evolved into reggae.",
    1973: "Bob Marley & The Wailers released 'Catch a Fire', bringing reggae to international audiences.",
    1976: "Smile Jamaica Concert. Bob Marley survived an assassination attempt.",
    1978: "One Love Peace Concert: Bob Marley united political rivals Michael Manley and Edward Seaga on stage.",
    1980: "Bob Marley's final concert at Madison Square Garden.",
    1981: "Bob Marley passed away. Reggae's global influence continued to grow.",
}


@function_tool
def get_reggae_historical_event(year: Annotated[int, "The year to query (e.g., 1950, 1970, 1980)"]) -> str:
    """Get historical events from Jamaica's reggae and sound system era by year."""
    if year in EVENTS:
        return EVENTS[year]
    return f"No major documented reggae event for {year}. Try years: {', '.join(map(str, EVENTS))}"


PROMPT = "What major reggae events happened in 1978 and 1980? Provide details."


def run(
    settings: Settings,
    prompt: str = PROMPT,
    log_file: Optional[str] = None,
    *,
    span_exporter: Optional[SpanExporter] = None,
    metric_reader: Optional[MetricReader] = None,
) -> TelemetryMiddleware:
    configure_from_settings(
        settings,
        log_level=settings.get("Logging:Level", "INFO"),
        log_file=log_file or settings.get("Telemetry:LogFile"),
        json_format=True,
    )
    config = load_provider_config(settings)
    tracer_provider, meter_provider = build_providers(
        settings.get("Telemetry:ServiceName", "agentlabs"),
        system=config.kind.value,
        model=config.model,
        span_exporter=span_exporter,
        metric_reader=metric_reader,
    )
    telemetry = TelemetryMiddleware(
        system=config.kind.value,
        model=config.model,
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
        capture_content=(settings.get("Telemetry:CaptureContent", "false").lower() == "true"),
    )

    client, _ = start(settings)
    agent = ChatClientAgent(
        client,
        instructions="You are a cultural historian. Use the available tool to look up historical events by year.",
        name="IrieTelemetry",
        tools=[get_reggae_historical_event],
        middleware=[telemetry],
    )

    print(f"Question: {prompt}\n")
    try:
        response = agent.run(prompt, options=ChatOptions(max_output_tokens=512))
        print("Agent response:\n")
        print(response.text)
    finally:
        print("\nFlushing telemetry...")
        flushed = telemetry.flush()
        print(f"Telemetry flush: {'Success' if flushed else 'Failed'}")
        telemetry.shutdown()
    return telemetry
