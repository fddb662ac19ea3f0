"""Lab 07: one agent delegating to another through a function tool."""
from __future__ import annotations

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.config_loader import Settings
from .common import done, print_stream, start

PROMPT = "Write a short paragraph for visitors about the origins of ska music."


def run(settings: Settings, prompt: str = PROMPT) -> str:
    client, _ = start(settings)
    researcher = ChatClientAgent(
        client,
        name="Researcher",
        description="Looks up historical facts about Caribbean music and returns them as bullet points.",
        instructions="Answer with concise, factual bullet points.",
    )
    writer = ChatClientAgent(
        client,
        name="Writer",
        instructions="You write friendly copy for visitors. Ask the Researcher for facts before writing.",
        tools=[researcher.as_tool()],
    )

    print(f"Task: {prompt}\n")
    text = print_stream(writer.run_stream(prompt))
    done()
    return text
