"""Lab 01: one agent, one streamed answer."""
from __future__ import annotations

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.config_loader import Settings
from .common import done, print_stream, start

INSTRUCTIONS = (
    "You are a historian specialising in Caribbean history. "
    "Provide detailed, accurate information with cultural context."
)
PROMPT = "Tell me about Jamaica's national heroes and their contributions to the nation."


def run(settings: Settings, prompt: str = PROMPT) -> str:
    client, _ = start(settings)
    agent = ChatClientAgent(client, instructions=INSTRUCTIONS, name="Historian")

    print(f"Question: {prompt}\n")
    print("Response:\n")
    text = print_stream(agent.run_stream(prompt))
    done()
    return text
