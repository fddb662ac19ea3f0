# tests/unit/test_thread.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from agentlabs.agents.thread import AgentThread  # type: ignore
from agentlabs.core.messages import (  # type: ignore
    ChatMessage,
    FunctionApprovalRequestContent,
    FunctionCallContent,
)


def _thread_with_pending() -> AgentThread:
    thread = AgentThread()
    thread.add_messages([ChatMessage.user("weather in Kingston?")])
    call = FunctionCallContent("c1", "get_weather", {"location": "Kingston"})
    thread.pending_calls = [call]
    thread.pending_requests = [FunctionApprovalRequestContent("approval_c1", call)]
    return thread


def test_serialize_shape():
    snap = _thread_with_pending().serialize()
    assert snap["type"] == "agent_thread"
    assert snap["version"] == 1
    assert snap["messages"][0]["role"] == "user"
    assert snap["pending_requests"][0]["id"] == "approval_c1"


def test_save_and_load_keep_messages_and_pending(tmp_path: Path):
    thread = _thread_with_pending()
    path = thread.save(tmp_path / "snapshots" / "thread.json")

    restored = AgentThread.load(path)
    assert restored.id == thread.id
    assert [m.text for m in restored.messages] == ["weather in Kingston?"]
    assert restored.has_pending_approvals
    assert restored.pending_calls == thread.pending_calls
    assert restored.pending_requests == thread.pending_requests


def test_load_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        AgentThread.load(tmp_path / "nope.json")


def test_rejects_foreign_snapshots():
    with pytest.raises(ValueError):
        AgentThread.from_snapshot({"type": "something_else"})
    with pytest.raises(ValueError):
        AgentThread.from_snapshot({"type": "agent_thread", "version": 99})


def test_clear_pending():
    thread = _thread_with_pending()
    thread.clear_pending()
    assert not thread.has_pending_approvals
    assert thread.pending_calls == []
