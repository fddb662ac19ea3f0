from __future__ import annotations
from typing import Iterable, Tuple

from agentlabs.agents.agent import AgentRunResponseUpdate
from agentlabs.config_loader import Settings
from agentlabs.core.ports import ChatClient
from agentlabs.resolver import describe, resolve


def start(settings: Settings) -> Tuple[ChatClient, str]:
    """Resolve the client and announce which provider a lab is talking to."""
    client = resolve(settings)
    label = describe(settings)
    print(f"Using: {label}\n")
    return client, label


def print_stream(updates: Iterable[AgentRunResponseUpdate]) -> str:
    parts = []
    for update in updates:
        if update.text:
            parts.append(update.text)
            print(update.text, end="", flush=True)
    print("")
    return "".join(parts)


def done() -> None:
    print("\nComplete!")
