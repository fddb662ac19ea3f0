"""Lab 08: save a conversation to disk and pick it up again later."""
from __future__ import annotations
from pathlib import Path
from typing import Optional

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.agents.thread import AgentThread
from agentlabs.config_loader import Settings
from .common import done, start

DEFAULT_SNAPSHOT = Path("sessions/lab08-thread.json")


def run(settings: Settings, snapshot_path: Optional[Path] = None) -> str:
    client, _ = start(settings)
    path = Path(snapshot_path or settings.get("Labs:SnapshotPath", str(DEFAULT_SNAPSHOT)))
    agent = ChatClientAgent(
        client,
        name="Storyteller",
        instructions="You are a storyteller who remembers everything said earlier in the conversation.",
    )

    thread = agent.new_thread()
    first = agent.run("Tell me a two-sentence folk tale about Anansi the spider.", thread)
    print(f"First turn:\n{first.text}\n")

    thread.save(path)
    print(f"Thread saved to {path} ({len(thread.messages)} messages)\n")

    restored = AgentThread.load(path)
    second = agent.run("Now retell that same tale from the point of view of the other animal.", restored)
    print(f"Second turn (resumed):\n{second.text}")
    done()
    return second.text
