"""Lab 02: a vision request mixing text and an image URI."""
from __future__ import annotations
from typing import Optional

from agentlabs.agents.agent import ChatClientAgent
from agentlabs.config_loader import Settings
from agentlabs.core.messages import ChatMessage, TextContent, UriContent
from .common import done, start

DEFAULT_IMAGE = "https://upload.wikimedia.org/wikipedia/commons/2/21/Garvey_Statue.jpg"


def run(settings: Settings, image_url: Optional[str] = None) -> str:
    client, _ = start(settings)
    agent = ChatClientAgent(
        client,
        name="ArtAnalyst",
        instructions="You are an art historian. Analyse imagery with attention to historical context.",
    )

    url = image_url or settings.get("Labs:ImageUrl", DEFAULT_IMAGE)
    message = ChatMessage(
        role="user",
        contents=[
            TextContent("Analyse this image and describe what you see, including any historical context."),
            UriContent(url, "image/jpeg"),
        ],
    )

    print("Analysing image...\n")
    response = agent.run(message)
    print(response.text)
    done()
    return response.text
