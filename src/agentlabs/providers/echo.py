from __future__ import annotations
from typing import Iterator, List, Optional
import time

from agentlabs.providers.registry import ProviderRegistry
from agentlabs.core.messages import ChatMessage, ChatOptions, ChatResponse, ChatResponseUpdate, UsageDetails

_LOREM_50 = (
    "Lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua Curabitur non nulla sit amet nisl "
    "tempor convallis quis ac lectus Phasellus viverra nulla ut metus varius laoreet "
    "Quisque rutrum Aenean imperdiet Etiam ultricies nisi vel augue Curabitur ullamcorper ultricies nisi"
).split()


@ProviderRegistry.register("echo")
class EchoChatClient:
    """
    Offline stub that returns a fixed 50-word lorem ipsum and never calls tools.
    Streaming yields one word at a time, optionally with a delay to simulate tokens.
    """

    def __init__(self, model: str = "echo-lorem", token_delay: float = 0.0, words: Optional[List[str]] = None):
        self.model = model
        self.token_delay = float(token_delay)
        self.words = list(words) if words is not None else list(_LOREM_50)

    @classmethod
    def create(cls, config) -> "EchoChatClient":
        return cls(model=config.model, token_delay=config.token_delay)

    def _usage(self, messages: List[ChatMessage]) -> UsageDetails:
        prompt = sum(len(m.text.split()) for m in messages)
        return UsageDetails(prompt, len(self.words), prompt + len(self.words))

    def chat(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> ChatResponse:
        return ChatResponse(
            messages=[ChatMessage.from_text("assistant", " ".join(self.words))],
            usage=self._usage(messages),
            model=self.model,
        )

    def chat_stream(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> Iterator[ChatResponseUpdate]:
        last_idx = len(self.words) - 1
        for i, w in enumerate(self.words):
            yield ChatResponseUpdate(text=w + ("" if i == last_idx else " "))
            if self.token_delay > 0:
                time.sleep(self.token_delay)
        yield ChatResponseUpdate(usage=self._usage(messages))
