# src/agentlabs/core/messages.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class TextContent:
    text: str


@dataclass
class UriContent:
    """Media referenced by URI (http(s) or data:), e.g. an image for a vision model."""
    uri: str
    media_type: str


@dataclass
class FunctionCallContent:
    call_id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FunctionResultContent:
    call_id: str
    name: str
    result: Any = None


@dataclass
class FunctionApprovalResponseContent:
    id: str
    approved: bool
    function_call: FunctionCallContent


@dataclass
class FunctionApprovalRequestContent:
    """
    Emitted by an agent instead of running an approval-gated tool.
    Answer it with create_response() inside a user message on the same thread.
    """
    id: str
    function_call: FunctionCallContent

    def create_response(self, approved: bool) -> FunctionApprovalResponseContent:
        return FunctionApprovalResponseContent(id=self.id, approved=approved, function_call=self.function_call)


Content = Union[
    TextContent,
    UriContent,
    FunctionCallContent,
    FunctionResultContent,
    FunctionApprovalRequestContent,
    FunctionApprovalResponseContent,
]


def _call_to_dict(call: FunctionCallContent) -> Dict[str, Any]:
    return {"call_id": call.call_id, "name": call.name, "arguments": call.arguments}


def _call_from_dict(d: Dict[str, Any]) -> FunctionCallContent:
    return FunctionCallContent(call_id=d["call_id"], name=d["name"], arguments=dict(d.get("arguments") or {}))


def content_to_dict(c: Content) -> Dict[str, Any]:
    if isinstance(c, TextContent):
        return {"type": "text", "text": c.text}
    if isinstance(c, UriContent):
        return {"type": "uri", "uri": c.uri, "media_type": c.media_type}
    if isinstance(c, FunctionCallContent):
        return {"type": "function_call", **_call_to_dict(c)}
    if isinstance(c, FunctionResultContent):
        return {"type": "function_result", "call_id": c.call_id, "name": c.name, "result": c.result}
    if isinstance(c, FunctionApprovalRequestContent):
        return {"type": "approval_request", "id": c.id, "function_call": _call_to_dict(c.function_call)}
    if isinstance(c, FunctionApprovalResponseContent):
        return {
            "type": "approval_response",
            "id": c.id,
            "approved": c.approved,
            "function_call": _call_to_dict(c.function_call),
        }
    raise TypeError(f"Unsupported content: {type(c).__name__}")


def content_from_dict(d: Dict[str, Any]) -> Content:
    kind = d.get("type")
    if kind == "text":
        return TextContent(text=d.get("text", ""))
    if kind == "uri":
        return UriContent(uri=d["uri"], media_type=d.get("media_type", "application/octet-stream"))
    if kind == "function_call":
        return _call_from_dict(d)
    if kind == "function_result":
        return FunctionResultContent(call_id=d["call_id"], name=d.get("name", ""), result=d.get("result"))
    if kind == "approval_request":
        return FunctionApprovalRequestContent(id=d["id"], function_call=_call_from_dict(d["function_call"]))
    if kind == "approval_response":
        return FunctionApprovalResponseContent(
            id=d["id"], approved=bool(d.get("approved")), function_call=_call_from_dict(d["function_call"])
        )
    raise ValueError(f"Unknown content type '{kind}'")


@dataclass
class ChatMessage:
    role: Role
    contents: List[Content] = field(default_factory=list)
    author_name: Optional[str] = None

    @classmethod
    def from_text(cls, role: Role, text: str, author_name: Optional[str] = None) -> "ChatMessage":
        return cls(role=role, contents=[TextContent(text)], author_name=author_name)

    @classmethod
    def user(cls, text: str) -> "ChatMessage":
        return cls.from_text("user", text)

    @classmethod
    def system(cls, text: str) -> "ChatMessage":
        return cls.from_text("system", text)

    @property
    def text(self) -> str:
        return "".join(c.text for c in self.contents if isinstance(c, TextContent))

    def of_type(self, klass: type) -> List[Any]:
        return [c for c in self.contents if isinstance(c, klass)]

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"role": self.role, "contents": [content_to_dict(c) for c in self.contents]}
        if self.author_name:
            d["author_name"] = self.author_name
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ChatMessage":
        # Older transcript records carry a bare 'content' string
        if "contents" not in d:
            return cls.from_text(d["role"], str(d.get("content", "")), d.get("author_name"))
        return cls(
            role=d["role"],
            contents=[content_from_dict(c) for c in d.get("contents") or []],
            author_name=d.get("author_name"),
        )


@dataclass
class ChatOptions:
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    # Tool declarations: objects exposing .name, .description and .parameters (JSON schema)
    tools: Sequence[Any] = ()
    # {"name": ..., "schema": {...}} for JSON-schema constrained output
    response_format: Optional[Dict[str, Any]] = None


@dataclass
class UsageDetails:
    input_token_count: int = 0
    output_token_count: int = 0
    total_token_count: int = 0

    def __add__(self, other: Optional["UsageDetails"]) -> "UsageDetails":
        if other is None:
            return self
        return UsageDetails(
            input_token_count=self.input_token_count + other.input_token_count,
            output_token_count=self.output_token_count + other.output_token_count,
            total_token_count=self.total_token_count + other.total_token_count,
        )


@dataclass
class ChatResponse:
    messages: List[ChatMessage] = field(default_factory=list)
    usage: Optional[UsageDetails] = None
    response_id: Optional[str] = None
    model: Optional[str] = None

    @property
    def text(self) -> str:
        return "".join(m.text for m in self.messages)

    @property
    def function_calls(self) -> List[FunctionCallContent]:
        return [c for m in self.messages for c in m.of_type(FunctionCallContent)]


@dataclass
class ChatResponseUpdate:
    """One fragment of a streamed response."""
    text: str = ""
    contents: List[Content] = field(default_factory=list)
    usage: Optional[UsageDetails] = None
    response_id: Optional[str] = None


def as_messages(value: Union[None, str, ChatMessage, Sequence[ChatMessage]]) -> List[ChatMessage]:
    if value is None:
        return []
    if isinstance(value, str):
        return [ChatMessage.user(value)]
    if isinstance(value, ChatMessage):
        return [value]
    return list(value)
