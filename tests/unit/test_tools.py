# tests/unit/test_tools.py

from __future__ import annotations
import sys
from pathlib import Path
from typing import Annotated

import pytest
from pydantic import ValidationError

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from agentlabs.agents.tools import AIFunction, ApprovalRequiredFunction, as_ai_function, function_tool  # type: ignore


def get_parish_info(parish_name: Annotated[str, "The name of the parish"], detailed: bool = False) -> str:
    """Get information about a parish.

    Longer notes that should not reach the model.
    """
    return f"{parish_name}:{detailed}"


def test_schema_from_signature():
    fn = AIFunction(get_parish_info)
    assert fn.name == "get_parish_info"
    assert fn.description == "Get information about a parish."
    params = fn.parameters
    assert "title" not in params
    assert params["required"] == ["parish_name"]
    assert params["properties"]["parish_name"]["type"] == "string"
    assert params["properties"]["parish_name"]["description"] == "The name of the parish"
    assert params["properties"]["detailed"]["default"] is False


def test_invoke_validates_and_coerces():
    fn = AIFunction(get_parish_info)
    assert fn.invoke({"parish_name": "Portland", "detailed": "true"}) == "Portland:True"
    # Extra keys from the model are ignored
    assert fn.invoke({"parish_name": "Portland", "extra": 1}) == "Portland:False"
    with pytest.raises(ValidationError):
        fn.invoke({})


def test_decorator_forms():
    @function_tool
    def ping() -> str:
        """Reply with pong."""
        return "pong"

    @function_tool(name="weather", description="Weather lookup", approval_required=True)
    def get_weather(location: str) -> str:
        return location

    assert isinstance(ping, AIFunction) and not ping.approval_required
    assert ping() == "pong"
    assert isinstance(get_weather, ApprovalRequiredFunction)
    assert get_weather.name == "weather"
    assert get_weather.approval_required
    assert get_weather.invoke({"location": "Amsterdam"}) == "Amsterdam"


def test_as_ai_function():
    fn = AIFunction(get_parish_info)
    assert as_ai_function(fn) is fn
    assert as_ai_function(get_parish_info).name == "get_parish_info"
    with pytest.raises(TypeError):
        as_ai_function(42)
