# src/agentlabs/agents/agent.py
from __future__ import annotations
import dataclasses
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Dict, Iterator, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError

from agentlabs.core.cancellation import CancellationToken, cancellable
from agentlabs.core.messages import (
    ChatMessage,
    ChatOptions,
    Content,
    FunctionApprovalRequestContent,
    FunctionApprovalResponseContent,
    FunctionCallContent,
    FunctionResultContent,
    TextContent,
    UsageDetails,
    as_messages,
)
from agentlabs.core.ports import ChatClient
from agentlabs.storage.transcript import Transcript
from .middleware import AgentRunContext, FunctionInvocationContext, run_pipeline, split_middleware
from .thread import AgentThread
from .tools import AIFunction, as_ai_function

logger = logging.getLogger(__name__)

REJECTED_RESULT = "Error: Tool call invocation was rejected by user."


def _add_usage(total: Optional[UsageDetails], more: Optional[UsageDetails]) -> Optional[UsageDetails]:
    if more is None:
        return total
    return more if total is None else total + more


def _without_calls(messages: List[ChatMessage]) -> List[ChatMessage]:
    kept = []
    for m in messages:
        contents = [c for c in m.contents if not isinstance(c, FunctionCallContent)]
        if contents:
            kept.append(ChatMessage(role=m.role, contents=contents, author_name=m.author_name))
    return kept


def _response_format(fmt: Any) -> Optional[Dict[str, Any]]:
    if fmt is None:
        return None
    if isinstance(fmt, dict):
        return fmt
    if isinstance(fmt, type) and issubclass(fmt, BaseModel):
        return {"name": fmt.__name__, "schema": fmt.model_json_schema()}
    raise TypeError(f"response_format must be a pydantic model class or a schema dict, got {fmt!r}")


@dataclass
class AgentRunResponse:
    messages: List[ChatMessage] = field(default_factory=list)
    usage: Optional[UsageDetails] = None
    response_id: Optional[str] = None
    agent_name: Optional[str] = None
    response_format: Any = None

    @property
    def text(self) -> str:
        return "".join(m.text for m in self.messages if m.role == "assistant")

    @property
    def user_input_requests(self) -> List[FunctionApprovalRequestContent]:
        return [c for m in self.messages for c in m.of_type(FunctionApprovalRequestContent)]

    @property
    def value(self) -> Any:
        """The reply parsed into the pydantic model passed as response_format."""
        if not (isinstance(self.response_format, type) and issubclass(self.response_format, BaseModel)):
            raise ValueError("Run was not made with a pydantic response_format")
        return self.response_format.model_validate_json(self.text)

    def try_value(self) -> Any:
        try:
            return self.value
        except (ValidationError, ValueError) as e:
            logger.debug("structured output did not validate: %s", e)
            return None

    def to_updates(self) -> List["AgentRunResponseUpdate"]:
        """Replay this response as the updates a streaming run would have produced."""
        updates = []
        for m in self.messages:
            text = m.text if m.role == "assistant" else ""
            rest = [c for c in m.contents if not isinstance(c, TextContent)]
            if text or rest:
                updates.append(AgentRunResponseUpdate(
                    text=text,
                    contents=rest,
                    response_id=self.response_id,
                    author_name=m.author_name or self.agent_name,
                ))
        if self.usage is not None:
            updates.append(AgentRunResponseUpdate(usage=self.usage, response_id=self.response_id, author_name=self.agent_name))
        return updates


@dataclass
class AgentRunResponseUpdate:
    text: str = ""
    contents: List[Content] = field(default_factory=list)
    usage: Optional[UsageDetails] = None
    response_id: Optional[str] = None
    author_name: Optional[str] = None

    @property
    def user_input_requests(self) -> List[FunctionApprovalRequestContent]:
        return [c for c in self.contents if isinstance(c, FunctionApprovalRequestContent)]


def as_update_stream(result: Any) -> Iterator[AgentRunResponseUpdate]:
    """Streaming middleware may short-circuit with a whole AgentRunResponse; stream it as updates."""
    if isinstance(result, AgentRunResponse):
        return iter(result.to_updates())
    return result


class ChatClientAgent:
    """
    Named, instruction-bound wrapper around a ChatClient plus the tools it may call.

    run()/run_stream() drive the function-calling loop: tool calls the model
    requests are invoked and their results fed back until the model answers
    in text. Tools flagged approval_required pause the loop and surface
    FunctionApprovalRequestContent to the caller instead.
    """

    def __init__(
        self,
        chat_client: ChatClient,
        instructions: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tools: Sequence[Any] = (),
        middleware: Sequence[Any] = (),
        max_iterations: int = 10,
    ):
        self.chat_client = chat_client
        self.instructions = instructions
        self.name = name
        self.description = description
        self.tools: List[AIFunction] = [as_ai_function(t) for t in tools]
        self.max_iterations = max_iterations
        self._agent_mw, self._function_mw = split_middleware(middleware)

    # ----- threads -----

    def new_thread(self, root_dir: Optional[Path] = None, session_id: Optional[str] = None) -> AgentThread:
        meta = {"agent": self.name, "model": getattr(self.chat_client, "model", None)}
        return AgentThread(Transcript(session_id=session_id, root_dir=root_dir, header_meta=meta))

    def deserialize_thread(self, snapshot: Dict[str, Any], root_dir: Optional[Path] = None) -> AgentThread:
        return AgentThread.from_snapshot(snapshot, root_dir=root_dir)

    # ----- public runs -----

    def run(
        self,
        messages: Any = None,
        thread: Optional[AgentThread] = None,
        *,
        options: Optional[ChatOptions] = None,
        response_format: Any = None,
    ) -> AgentRunResponse:
        thread = thread or self.new_thread()
        ctx = AgentRunContext(
            agent=self,
            messages=as_messages(messages),
            thread=thread,
            options=self._effective_options(options, response_format),
        )

        def final(c: AgentRunContext) -> None:
            c.result = self._run_core(c.messages, c.thread, c.options)

        run_pipeline(self._agent_mw, ctx, final)
        result: AgentRunResponse = ctx.result
        result.response_format = response_format
        return result

    def run_stream(
        self,
        messages: Any = None,
        thread: Optional[AgentThread] = None,
        *,
        options: Optional[ChatOptions] = None,
        response_format: Any = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Iterator[AgentRunResponseUpdate]:
        thread = thread or self.new_thread()
        ctx = AgentRunContext(
            agent=self,
            messages=as_messages(messages),
            thread=thread,
            options=self._effective_options(options, response_format),
            is_streaming=True,
        )

        def final(c: AgentRunContext) -> None:
            c.result = self._stream_core(c.messages, c.thread, c.options)

        run_pipeline(self._agent_mw, ctx, final)
        return cancellable(as_update_stream(ctx.result), cancellation)

    def as_tool(self, name: Optional[str] = None, description: Optional[str] = None) -> AIFunction:
        """Expose this agent as a function another agent can call."""
        agent = self

        def delegate(task: Annotated[str, "The task or question to hand to the agent"]) -> str:
            return agent.run(task).text

        tool_name = name or re.sub(r"[^A-Za-z0-9_-]", "_", self.name or "agent")
        desc = description or self.description or self.instructions or f"Ask {tool_name} for help"
        return AIFunction(delegate, name=tool_name, description=desc)

    # ----- internals -----

    def _effective_options(self, options: Optional[ChatOptions], response_format: Any) -> ChatOptions:
        opts = dataclasses.replace(options) if options else ChatOptions()
        opts.tools = [as_ai_function(t) for t in opts.tools] if opts.tools else list(self.tools)
        if response_format is not None:
            opts.response_format = _response_format(response_format)
        return opts

    def _conversation(self, thread: AgentThread) -> List[ChatMessage]:
        history = thread.messages
        if self.instructions:
            return [ChatMessage.system(self.instructions)] + history
        return history

    def _tool(self, name: str, opts: ChatOptions) -> Optional[AIFunction]:
        return next((t for t in opts.tools if t.name == name), None)

    def _invoke(self, call: FunctionCallContent, opts: ChatOptions) -> Tuple[FunctionResultContent, bool]:
        tool = self._tool(call.name, opts)
        if tool is None:
            logger.warning("model requested unknown function %r", call.name)
            return FunctionResultContent(call.call_id, call.name, f'Error: Requested function "{call.name}" not found.'), False

        ctx = FunctionInvocationContext(function=tool, arguments=dict(call.arguments))

        def final(c: FunctionInvocationContext) -> None:
            c.result = c.function.invoke(c.arguments)

        try:
            run_pipeline(self._function_mw, ctx, final)
        except Exception as e:
            # The model sees the failure and can recover; the run continues
            logger.warning("function %s failed: %s", call.name, e, exc_info=True)
            return FunctionResultContent(call.call_id, call.name, f"Error: Function failed. Exception: {e}"), False
        logger.debug("function %s(%s) -> %r", call.name, call.arguments, ctx.result)
        return FunctionResultContent(call.call_id, call.name, ctx.result), ctx.terminate

    def _invoke_all(self, calls: List[FunctionCallContent], opts: ChatOptions) -> Tuple[ChatMessage, bool]:
        results: List[Content] = []
        terminate = False
        for call in calls:
            result, stop = self._invoke(call, opts)
            results.append(result)
            terminate = terminate or stop
        return ChatMessage(role="tool", contents=results), terminate

    def _apply_input(self, messages: List[ChatMessage], thread: AgentThread, opts: ChatOptions) -> None:
        """Settle pending approvals, then record the caller's messages on the thread."""
        answers: Dict[str, FunctionApprovalResponseContent] = {}
        plain: List[ChatMessage] = []
        for m in messages:
            for a in m.of_type(FunctionApprovalResponseContent):
                answers[a.id] = a
            rest = [c for c in m.contents if not isinstance(c, FunctionApprovalResponseContent)]
            if rest:
                plain.append(ChatMessage(role=m.role, contents=rest, author_name=m.author_name))

        if thread.pending_calls:
            gated = {r.function_call.call_id: r.id for r in thread.pending_requests}
            results: List[Content] = []
            for call in thread.pending_calls:
                request_id = gated.get(call.call_id)
                if request_id is None:
                    result, _ = self._invoke(call, opts)
                elif answers.get(request_id) is not None and answers[request_id].approved:
                    logger.info("function %s approved", call.name)
                    result, _ = self._invoke(call, opts)
                else:
                    logger.info("function %s rejected", call.name)
                    result = FunctionResultContent(call.call_id, call.name, REJECTED_RESULT)
                results.append(result)
            thread.add_messages([
                ChatMessage(role="assistant", contents=list(thread.pending_calls), author_name=self.name),
                ChatMessage(role="tool", contents=results),
            ])
            thread.clear_pending()
        elif answers:
            logger.warning("ignoring %d approval response(s): thread has nothing pending", len(answers))

        thread.add_messages(plain)

    def _gate(self, calls: List[FunctionCallContent], thread: AgentThread, opts: ChatOptions) -> List[FunctionApprovalRequestContent]:
        gated = [c for c in calls if (t := self._tool(c.name, opts)) is not None and t.approval_required]
        if not gated:
            return []
        requests = [FunctionApprovalRequestContent(id=f"approval_{c.call_id}", function_call=c) for c in gated]
        thread.pending_calls = list(calls)
        thread.pending_requests = requests
        return requests

    def _iteration_options(self, opts: ChatOptions, iteration: int) -> ChatOptions:
        # One extra round without tools forces a text answer once the cap is hit
        if iteration < self.max_iterations:
            return opts
        logger.warning("agent %s hit max_iterations=%d; asking for a final answer", self.name, self.max_iterations)
        return dataclasses.replace(opts, tools=())

    def _run_core(self, messages: List[ChatMessage], thread: AgentThread, opts: ChatOptions) -> AgentRunResponse:
        self._apply_input(messages, thread, opts)
        produced: List[ChatMessage] = []
        usage: Optional[UsageDetails] = None
        response_id: Optional[str] = None

        for iteration in range(self.max_iterations + 1):
            response = self.chat_client.chat(self._conversation(thread), self._iteration_options(opts, iteration))
            usage = _add_usage(usage, response.usage)
            response_id = response.response_id or response_id
            for m in response.messages:
                m.author_name = m.author_name or self.name

            calls = response.function_calls
            if calls and iteration == self.max_iterations:
                # Tools were withheld this round; whatever the model still asks for is not run
                logger.warning("agent %s dropped %d tool call(s) after max_iterations", self.name, len(calls))
                response.messages = _without_calls(response.messages)
                calls = []
            if not calls:
                thread.add_messages(response.messages)
                produced.extend(response.messages)
                break

            requests = self._gate(calls, thread, opts)
            if requests:
                text = [c for m in response.messages for c in m.of_type(TextContent)]
                produced.append(ChatMessage(role="assistant", contents=text + requests, author_name=self.name))
                break

            tool_msg, terminate = self._invoke_all(calls, opts)
            thread.add_messages(response.messages + [tool_msg])
            produced.extend(response.messages + [tool_msg])
            if terminate:
                break

        return AgentRunResponse(messages=produced, usage=usage, response_id=response_id, agent_name=self.name)

    def _stream_core(self, messages: List[ChatMessage], thread: AgentThread, opts: ChatOptions) -> Iterator[AgentRunResponseUpdate]:
        self._apply_input(messages, thread, opts)

        for iteration in range(self.max_iterations + 1):
            parts: List[str] = []
            calls: List[FunctionCallContent] = []
            done = False
            try:
                for update in self.chat_client.chat_stream(self._conversation(thread), self._iteration_options(opts, iteration)):
                    calls.extend(c for c in update.contents if isinstance(c, FunctionCallContent))
                    if update.text:
                        parts.append(update.text)
                    if update.text or update.usage:
                        yield AgentRunResponseUpdate(
                            text=update.text,
                            usage=update.usage,
                            response_id=update.response_id,
                            author_name=self.name,
                        )
                done = True
            finally:
                if not done and parts:
                    # Consumer stopped early: keep what was already shown
                    thread.add_messages([ChatMessage.from_text("assistant", "".join(parts), self.name)], status="partial")

            if calls and iteration == self.max_iterations:
                logger.warning("agent %s dropped %d tool call(s) after max_iterations", self.name, len(calls))
                calls = []
            text: List[Content] = [TextContent("".join(parts))] if parts else []
            assistant = ChatMessage(role="assistant", contents=text + list(calls), author_name=self.name)
            if not calls:
                thread.add_messages([assistant])
                return

            requests = self._gate(calls, thread, opts)
            if requests:
                yield AgentRunResponseUpdate(contents=list(requests), author_name=self.name)
                return

            tool_msg, terminate = self._invoke_all(calls, opts)
            thread.add_messages([assistant, tool_msg])
            yield AgentRunResponseUpdate(contents=list(tool_msg.contents), author_name=self.name)
            if terminate:
                return
