from __future__ import annotations
from typing import Iterator, List, Optional, Protocol

from .messages import ChatMessage, ChatOptions, ChatResponse, ChatResponseUpdate


class ChatClient(Protocol):
    """
    Interface the agents use to talk to any LLM backend.
    """

    # Surface the model name for logging/describe
    model: str

    def chat(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> ChatResponse:
        """
        Synchronous call. Returns the assistant message(s), usage and response id when
        the provider reports them. Tool calls arrive as FunctionCallContent.
        """
        ...

    def chat_stream(
        self, messages: List[ChatMessage], options: Optional[ChatOptions] = None
    ) -> Iterator[ChatResponseUpdate]:
        """
        Streaming call. Yields fragments as they arrive; finite and single-use.
        """
        ...
