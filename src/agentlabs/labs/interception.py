"""Lab 10: middleware around agent runs and tool calls."""
from __future__ import annotations
import logging
import time
from typing import Annotated, List

from agentlabs.agents.agent import AgentRunResponse, ChatClientAgent
from agentlabs.agents.middleware import (
    AgentMiddleware,
    AgentRunContext,
    FunctionInvocationContext,
    agent_middleware,
    function_middleware,
)
from agentlabs.agents.tools import function_tool
from agentlabs.config_loader import Settings
from agentlabs.core.messages import ChatMessage
from .common import done, start

logger = logging.getLogger(__name__)

BLOCKED_WORDS = ("password", "credit card")


class TimingMiddleware(AgentMiddleware):
    def __init__(self) -> None:
        self.timings: List[float] = []

    def process(self, context: AgentRunContext, next) -> None:
        started = time.perf_counter()
        next(context)
        elapsed = time.perf_counter() - started
        self.timings.append(elapsed)
        logger.info("agent %s ran in %.2fs", context.agent.name, elapsed)


@agent_middleware
def guard_sensitive_input(context: AgentRunContext, next) -> None:
    """Short-circuit runs whose input mentions something we will not handle."""
    text = " ".join(m.text for m in context.messages).lower()
    if any(word in text for word in BLOCKED_WORDS):
        context.result = AgentRunResponse(
            messages=[ChatMessage.from_text("assistant", "Sorry, I can't help with sensitive information.")],
            agent_name=context.agent.name,
        )
        return
    next(context)


@function_middleware
def log_function_calls(context: FunctionInvocationContext, next) -> None:
    print(f"[tool] {context.function.name}({context.arguments})")
    next(context)
    print(f"[tool] -> {context.result}")


@function_tool
def convert_currency(
    amount: Annotated[float, "Amount in US dollars"],
    currency: Annotated[str, "Target currency code, e.g. JMD"] = "JMD",
) -> str:
    """Convert US dollars into another currency using fixed demo rates."""
    rates = {"JMD": 156.0, "EUR": 0.92, "GBP": 0.79}
    rate = rates.get(currency.upper())
    if rate is None:
        return f"No rate for {currency}. Known: {', '.join(rates)}"
    return f"{amount:.2f} USD = {amount * rate:.2f} {currency.upper()}"


PROMPTS = [
    "How much is 20 US dollars in Jamaican dollars?",
    "What's my bank password?",
]


def run(settings: Settings, prompts: List[str] = PROMPTS) -> List[str]:
    client, _ = start(settings)
    timing = TimingMiddleware()
    agent = ChatClientAgent(
        client,
        name="TravelHelper",
        instructions="You help travellers. Use tools for currency conversion.",
        tools=[convert_currency],
        middleware=[timing, guard_sensitive_input, log_function_calls],
    )

    replies = []
    for prompt in prompts:
        print(f"Question: {prompt}")
        response = agent.run(prompt)
        print(f"Answer: {response.text}\n")
        replies.append(response.text)
    print(f"Runs timed: {len(timing.timings)}")
    done()
    return replies
