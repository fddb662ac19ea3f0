# src/agentlabs/providers/ollama_adapter.py
"""
Ollama chat client over the native /api/chat endpoint.

Streaming responses are NDJSON: one JSON object per line, the last one
carrying done=true plus token counts. Tool calls arrive whole (never split
across lines) and without ids, so ids are minted locally.
"""
from __future__ import annotations
import base64
import json
import logging
import uuid
from typing import Any, Dict, Iterator, List, Optional

import requests

from agentlabs.providers.registry import ProviderRegistry
from agentlabs.providers.openai_adapter import stringify_result, tool_declarations
from agentlabs.core.errors import ProviderError
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


def _new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:12]}"


def _usage(data: Dict[str, Any]) -> Optional[UsageDetails]:
    if "prompt_eval_count" not in data and "eval_count" not in data:
        return None
    prompt = int(data.get("prompt_eval_count") or 0)
    completion = int(data.get("eval_count") or 0)
    return UsageDetails(input_token_count=prompt, output_token_count=completion, total_token_count=prompt + completion)


def _tool_calls(message: Dict[str, Any]) -> List[FunctionCallContent]:
    calls = []
    for call in message.get("tool_calls") or []:
        fn = (call or {}).get("function") or {}
        args = fn.get("arguments") or {}
        if isinstance(args, str):
            try:
                args = json.loads(args)
            except json.JSONDecodeError:
                logger.warning("discarding malformed tool arguments: %r", args)
                args = {}
        calls.append(FunctionCallContent(call_id=call.get("id") or _new_call_id(), name=str(fn.get("name") or ""), arguments=args))
    return calls


@ProviderRegistry.register("ollamaimage")
@ProviderRegistry.register("ollama")
class OllamaChatClient:
    def __init__(self, endpoint: str, model: str, *, session: Optional[requests.Session] = None):
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self._session = session

    @classmethod
    def create(cls, config) -> "OllamaChatClient":
        return cls(endpoint=config.endpoint, model=config.model)

    @property
    def session(self) -> requests.Session:
        # Created on first request; resolution itself stays offline
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ----- request mapping -----

    def _image_payload(self, content: UriContent) -> str:
        uri = content.uri
        if uri.startswith("data:"):
            _, _, data = uri.partition(",")
            return data
        resp = self.session.get(uri)
        resp.raise_for_status()
        return base64.b64encode(resp.content).decode("ascii")

    def _to_ollama_messages(self, messages: List[ChatMessage]) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for m in messages:
            results = m.of_type(FunctionResultContent)
            if results:
                for r in results:
                    out.append({"role": "tool", "content": stringify_result(r.result), "tool_name": r.name})
                continue

            msg: Dict[str, Any] = {"role": m.role, "content": m.text}
            images = [self._image_payload(c) for c in m.of_type(UriContent)]
            if images:
                msg["images"] = images
            calls = m.of_type(FunctionCallContent)
            if calls:
                msg["tool_calls"] = [{"function": {"name": c.name, "arguments": c.arguments}} for c in calls]
            out.append(msg)
        return out

    def _build_payload(self, messages: List[ChatMessage], options: Optional[ChatOptions], *, stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._to_ollama_messages(messages),
            "stream": stream,
        }
        if options:
            model_opts: Dict[str, Any] = {}
            if options.temperature is not None:
                model_opts["temperature"] = options.temperature
            if options.max_output_tokens is not None:
                model_opts["num_predict"] = options.max_output_tokens
            if model_opts:
                payload["options"] = model_opts
            tools = tool_declarations(options)
            if tools:
                payload["tools"] = tools
            if options.response_format:
                payload["format"] = options.response_format["schema"]
        return payload

    # ----- calls -----

    def chat(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> ChatResponse:
        url = f"{self.endpoint}/api/chat"
        resp = self.session.post(url, json=self._build_payload(messages, options, stream=False))
        resp.raise_for_status()
        data: Dict[str, Any] = resp.json()
        if "message" not in data:
            raise ProviderError(f"Unexpected Ollama response shape: {data}")

        message = data.get("message") or {}
        contents: List[Any] = []
        if message.get("content"):
            contents.append(TextContent(message["content"]))
        contents.extend(_tool_calls(message))
        return ChatResponse(
            messages=[ChatMessage(role="assistant", contents=contents)],
            usage=_usage(data),
            response_id=None,
            model=data.get("model", self.model),
        )

    def chat_stream(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None) -> Iterator[ChatResponseUpdate]:
        url = f"{self.endpoint}/api/chat"
        resp = self.session.post(url, json=self._build_payload(messages, options, stream=True), stream=True)
        resp.raise_for_status()
        try:
            for line in resp.iter_lines():
                if not line:
                    continue
                obj = json.loads(line)
                if "error" in obj:
                    raise ProviderError(str(obj["error"]))
                message = obj.get("message") or {}
                update = ChatResponseUpdate(text=message.get("content") or "", contents=list(_tool_calls(message)))
                if obj.get("done"):
                    update.usage = _usage(obj)
                if update.text or update.contents or update.usage:
                    yield update
        finally:
            resp.close()
