# src/agentlabs/agents/tools.py
"""
Function tools: plain Python callables exposed to the model.

    @function_tool
    def get_parish_info(parish_name: Annotated[str, "The name of the parish"]) -> str:
        '''Get information about a parish including its capital.'''

The JSON schema sent to the provider and the validation of the arguments the
model sends back are both derived from the signature by pydantic.
"""
from __future__ import annotations
import inspect
from typing import Annotated, Any, Callable, Dict, Optional, get_args, get_origin, get_type_hints

from pydantic import BaseModel, ConfigDict, Field, create_model


def _first_paragraph(doc: Optional[str]) -> str:
    if not doc:
        return ""
    return inspect.cleandoc(doc).split("\n\n", 1)[0].replace("\n", " ").strip()


def _split_annotated(hint: Any) -> tuple[Any, Optional[str]]:
    """Annotated[int, "year to query"] -> (int, "year to query")."""
    if get_origin(hint) is not Annotated:
        return hint, None
    base, *meta = get_args(hint)
    description = next((m for m in meta if isinstance(m, str)), None)
    rest = [m for m in meta if not isinstance(m, str)]
    if rest:
        base = Annotated[(base, *rest)]
    return base, description


def _arguments_model(func: Callable[..., Any], name: str) -> type[BaseModel]:
    hints = get_type_hints(func, include_extras=True)
    fields: Dict[str, Any] = {}
    for pname, param in inspect.signature(func).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation, description = _split_annotated(hints.get(pname, Any))
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[pname] = (annotation, Field(default, description=description))
    return create_model(f"{name}_arguments", __config__=ConfigDict(extra="ignore"), **fields)


class AIFunction:
    approval_required = False

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None, description: Optional[str] = None):
        self.func = func
        self.name = name or func.__name__
        self.description = description if description is not None else _first_paragraph(func.__doc__)
        self._arguments = _arguments_model(func, self.name)

    @property
    def parameters(self) -> Dict[str, Any]:
        schema = self._arguments.model_json_schema()
        schema.pop("title", None)
        return schema

    def invoke(self, arguments: Optional[Dict[str, Any]] = None) -> Any:
        parsed = self._arguments.model_validate(arguments or {})
        kwargs = {k: getattr(parsed, k) for k in self._arguments.model_fields}
        return self.func(**kwargs)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class ApprovalRequiredFunction(AIFunction):
    """Wraps a function so agents ask the caller before running it."""

    approval_required = True

    def __init__(self, inner: AIFunction):
        self.inner = inner
        self.func = inner.func
        self.name = inner.name
        self.description = inner.description
        self._arguments = inner._arguments

    def invoke(self, arguments: Optional[Dict[str, Any]] = None) -> Any:
        return self.inner.invoke(arguments)


def function_tool(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    approval_required: bool = False,
):
    def wrap(f: Callable[..., Any]) -> AIFunction:
        fn = AIFunction(f, name=name, description=description)
        return ApprovalRequiredFunction(fn) if approval_required else fn

    if func is not None:
        return wrap(func)
    return wrap


def as_ai_function(tool: Any) -> AIFunction:
    if isinstance(tool, AIFunction):
        return tool
    if callable(tool):
        return AIFunction(tool)
    raise TypeError(f"Not a tool: {tool!r}")
