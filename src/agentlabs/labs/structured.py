"""Lab 06: typed output validated by pydantic."""
from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel, Field

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.config_loader import Settings
from .common import done, start


class CityInfo(BaseModel):
    name: str
    country: str
    population: Optional[int] = Field(None, description="Approximate population")
    highlights: List[str] = Field(default_factory=list, description="Notable places or facts")


PROMPT = "Give me key facts about Kingston, Jamaica."


def run(settings: Settings, prompt: str = PROMPT) -> Optional[CityInfo]:
    client, _ = start(settings)
    agent = ChatClientAgent(
        client,
        name="CityFacts",
        instructions="You answer strictly in JSON matching the requested schema.",
    )

    response = agent.run(prompt, response_format=CityInfo)
    info = response.try_value()
    if info is None:
        print("Model reply did not match the CityInfo schema:\n")
        print(response.text)
        return None

    print(f"Name: {info.name}")
    print(f"Country: {info.country}")
    if info.population is not None:
        print(f"Population: {info.population:,}")
    for h in info.highlights:
        print(f" - {h}")
    done()
    return info
