from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from agentlabs.core.messages import ChatMessage, ChatOptions


@dataclass
class AgentRunContext:
    agent: Any
    messages: List[ChatMessage]
    thread: Any
    options: Optional[ChatOptions]
    is_streaming: bool = False
    # AgentRunResponse for run(); an iterator of updates for run_stream()
    result: Any = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FunctionInvocationContext:
    function: Any
    arguments: Dict[str, Any]
    result: Any = None
    # Set by middleware to stop the tool loop after this call
    terminate: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)


Next = Callable[[Any], None]


class AgentMiddleware:
    def process(self, context: AgentRunContext, next: Next) -> None:
        next(context)


class FunctionMiddleware:
    def process(self, context: FunctionInvocationContext, next: Next) -> None:
        next(context)


class _CallableAgentMiddleware(AgentMiddleware):
    def __init__(self, fn: Callable[[AgentRunContext, Next], None]):
        self.fn = fn

    def process(self, context: AgentRunContext, next: Next) -> None:
        self.fn(context, next)


class _CallableFunctionMiddleware(FunctionMiddleware):
    def __init__(self, fn: Callable[[FunctionInvocationContext, Next], None]):
        self.fn = fn

    def process(self, context: FunctionInvocationContext, next: Next) -> None:
        self.fn(context, next)


def agent_middleware(fn: Callable[[AgentRunContext, Next], None]) -> AgentMiddleware:
    return _CallableAgentMiddleware(fn)


def function_middleware(fn: Callable[[FunctionInvocationContext, Next], None]) -> FunctionMiddleware:
    return _CallableFunctionMiddleware(fn)


def split_middleware(items: Sequence[Any]) -> Tuple[List[AgentMiddleware], List[FunctionMiddleware]]:
    """An object may be both kinds (e.g. telemetry); it lands in both lists."""
    agent_mw: List[AgentMiddleware] = []
    function_mw: List[FunctionMiddleware] = []
    for m in items:
        matched = False
        if isinstance(m, AgentMiddleware):
            agent_mw.append(m)
            matched = True
        if isinstance(m, FunctionMiddleware):
            function_mw.append(m)
            matched = True
        if not matched:
            raise TypeError(
                f"Middleware {m!r} must subclass AgentMiddleware/FunctionMiddleware "
                "or be wrapped with agent_middleware()/function_middleware()"
            )
    return agent_mw, function_mw


def run_pipeline(middleware: Sequence[Any], context: Any, final: Callable[[Any], None]) -> Any:
    """First registered middleware is outermost; final runs innermost."""
    def call(index: int, ctx: Any) -> None:
        if index == len(middleware):
            final(ctx)
            return
        middleware[index].process(ctx, lambda c: call(index + 1, c))

    call(0, context)
    return context
