"""Lab 05: a tool that only runs once a human approves it."""
from __future__ import annotations
from typing import Annotated, Callable

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.agents.tools import ApprovalRequiredFunction, AIFunction
from agentlabs.config_loader import Settings
from agentlabs.core.messages import ChatMessage
from .common import start


def get_weather(city: Annotated[str, "City to check"]) -> str:
    """Provide a quick weather summary for the given city."""
    forecasts = {
        "amsterdam": "Expect light rain with cool breezes off the IJ.",
        "kingston": "Tropical sunshine with a chance of afternoon showers.",
    }
    return forecasts.get(city.lower(), f"Weather data for {city} is unavailable.")


PROMPT = "What's the weather like in Amsterdam?"


def run(settings: Settings, ask: Callable[[str], str] = input, prompt: str = PROMPT) -> str:
    client, _ = start(settings)
    agent = ChatClientAgent(
        client,
        instructions="You are a helpful assistant.",
        tools=[ApprovalRequiredFunction(AIFunction(get_weather))],
    )
    thread = agent.new_thread()

    response = agent.run(prompt, thread)
    requests = response.user_input_requests
    if not requests:
        print(response.text)
        return response.text

    answers = []
    for request in requests:
        print(f"Approval required for: '{request.function_call.name}' {request.function_call.arguments}")
        reply = (ask("Approve tool execution? (y/n): ") or "").strip()
        answers.append(request.create_response(approved=reply.lower().startswith("y")))

    final = agent.run(ChatMessage(role="user", contents=answers), thread)
    if all(a.approved for a in answers):
        print(f"\nApproved. Result:\n{final.text}")
    else:
        print("\nTool call denied. Agent continued without executing the function.")
        print(final.text)
    return final.text
