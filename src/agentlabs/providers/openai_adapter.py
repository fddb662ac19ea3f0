# src/agentlabs/providers/openai_adapter.py
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Iterator, List, Optional

from openai import OpenAI

from agentlabs.providers.registry import ProviderRegistry
from agentlabs.core.messages import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatResponseUpdate,
    FunctionCallContent,
    FunctionResultContent,
    TextContent,
    UriContent,
    UsageDetails,
)

logger = logging.getLogger(__name__)


def stringify_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False, default=str)


def tool_declarations(options: Optional[ChatOptions]) -> List[Dict[str, Any]]:
    if not options or not options.tools:
        return []
    return [
        {
            "type": "function",
            "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
        }
        for t in options.tools
    ]


def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("discarding malformed tool arguments: %r", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _user_content(m: ChatMessage) -> Any:
    if not m.of_type(UriContent):
        return m.text
    parts: List[Dict[str, Any]] = []
    for c in m.contents:
        if isinstance(c, TextContent):
            parts.append({"type": "text", "text": c.text})
        elif isinstance(c, UriContent):
            parts.append({"type": "image_url", "image_url": {"url": c.uri}})
    return parts


def to_openai_messages(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for m in messages:
        results = m.of_type(FunctionResultContent)
        if results:
            for r in results:
                out.append({"role": "tool", "tool_call_id": r.call_id, "content": stringify_result(r.result)})
            continue

        if m.role == "assistant":
            msg: Dict[str, Any] = {"role": "assistant", "content": m.text or None}
            calls = m.of_type(FunctionCallContent)
            if calls:
                msg["tool_calls"] = [
                    {
                        "id": c.call_id,
                        "type": "function",
                        "function": {"name": c.name, "arguments": json.dumps(c.arguments)},
                    }
                    for c in calls
                ]
            out.append(msg)
        elif m.role == "user":
            out.append({"role": "user", "content": _user_content(m)})
        else:
            out.append({"role": m.role, "content": m.text})
    return out


def _usage(raw: Any) -> Optional[UsageDetails]:
    if raw is None:
        return None
    return UsageDetails(
        input_token_count=int(getattr(raw, "prompt_tokens", 0) or 0),
        output_token_count=int(getattr(raw, "completion_tokens", 0) or 0),
        total_token_count=int(getattr(raw, "total_tokens", 0) or 0),
    )


@ProviderRegistry.register("openai")
class OpenAIChatClient:
    """
    Thin adapter over openai.chat.completions.
    SDK errors propagate unchanged; there is no retry layer.
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        self.model = model
        client_kwargs: Dict[str, Any] = {"api_key": api_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        if organization:
            client_kwargs["organization"] = organization
        self.client = OpenAI(**client_kwargs)

    @classmethod
    def create(cls, config) -> "OpenAIChatClient":
        return cls(
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            organization=config.organization,
        )

    def _build_args(self, messages: List[ChatMessage], options: Optional[ChatOptions], *, stream: bool) -> Dict[str, Any]:
        args: Dict[str, Any] = {
            "model": self.model,
            "messages": to_openai_messages(messages),
            "stream": stream,
        }
        if stream:
            args["stream_options"] = {"include_usage": True}
        if options:
            if options.temperature is not None:
                args["temperature"] = options.temperature
            if options.max_output_tokens is not None:
                args["max_tokens"] = options.max_output_tokens
            tools = tool_declarations(options)
            if tools:
                args["tools"] = tools
            if options.response_format:
                args["response_format"] = {
                    "type": "json_schema",
                    "json_schema": {
                        "name": options.response_format["name"],
                        "schema": options.response_format["schema"],
                    },
                }
        return args

    def chat(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> ChatResponse:
        resp = self.client.chat.completions.create(**self._build_args(messages, options, stream=False))
        msg = resp.choices[0].message

        contents: List[Any] = []
        if msg.content:
            contents.append(TextContent(msg.content))
        for tc in getattr(msg, "tool_calls", None) or []:
            contents.append(
                FunctionCallContent(
                    call_id=tc.id,
                    name=tc.function.name,
                    arguments=_parse_arguments(tc.function.arguments),
                )
            )
        return ChatResponse(
            messages=[ChatMessage(role="assistant", contents=contents)],
            usage=_usage(getattr(resp, "usage", None)),
            response_id=getattr(resp, "id", None),
            model=self.model,
        )

    def chat_stream(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> Iterator[ChatResponseUpdate]:
        stream = self.client.chat.completions.create(**self._build_args(messages, options, stream=True))

        # Tool-call deltas arrive in pieces keyed by index
        pending: Dict[int, Dict[str, str]] = {}
        response_id: Optional[str] = None
        usage: Optional[UsageDetails] = None

        for chunk in stream:
            response_id = getattr(chunk, "id", None) or response_id
            if getattr(chunk, "usage", None) is not None:
                usage = _usage(chunk.usage)
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            for tc in getattr(delta, "tool_calls", None) or []:
                slot = pending.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                if tc.id:
                    slot["id"] = tc.id
                fn = getattr(tc, "function", None)
                if fn is not None:
                    slot["name"] += fn.name or ""
                    slot["arguments"] += fn.arguments or ""
            piece = getattr(delta, "content", None)
            if piece:
                yield ChatResponseUpdate(text=piece, response_id=response_id)

        calls = [
            FunctionCallContent(call_id=s["id"], name=s["name"], arguments=_parse_arguments(s["arguments"]))
            for _, s in sorted(pending.items())
        ]
        if calls or usage is not None:
            yield ChatResponseUpdate(contents=list(calls), usage=usage, response_id=response_id)
