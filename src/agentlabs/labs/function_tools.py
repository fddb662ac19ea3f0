"""Lab 04: an agent that calls a local function to answer."""
from __future__ import annotations
from typing import Annotated

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.agents.tools import function_tool
from agentlabs.config_loader import Settings
from .common import done, print_stream, start

PARISHES = {
    "Kingston": "Capital: Kingston (also capital of Jamaica). Jamaica's largest city and cultural hub.",
    "St. Andrew": "Capital: Half Way Tree. Part of the Kingston Metropolitan Area.",
    "Portland": "Capital: Port Antonio. Known for its lush vegetation and Blue Lagoon.",
    "St. Thomas": "Capital: Morant Bay. Site of the 1865 Morant Bay Rebellion.",
    "Westmoreland": "Capital: Savanna-la-Mar. Known for its beaches.",
}


@function_tool
def get_parish_info(parish_name: Annotated[str, "The name of the Jamaican parish"]) -> str:
    """Get information about a Jamaican parish including its capital and key facts."""
    info = PARISHES.get(parish_name)
    if info is None:
        return f"Parish '{parish_name}' not found. Available parishes: {', '.join(PARISHES)}"
    return info


PROMPT = "Tell me about the parish where the Morant Bay Rebellion occurred."


def run(settings: Settings, prompt: str = PROMPT) -> str:
    client, _ = start(settings)
    agent = ChatClientAgent(
        client,
        instructions="You are an expert on Jamaican geography and history. Use available tools when needed.",
        name="GeographyExpert",
        tools=[get_parish_info],
    )

    print(f"Question: {prompt}\n")
    text = print_stream(agent.run_stream(prompt))
    done()
    return text
