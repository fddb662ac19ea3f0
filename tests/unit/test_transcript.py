# tests/unit/test_transcript.py

from __future__ import annotations
import sys, json
from pathlib import Path

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from agentlabs.core.messages import ChatMessage, FunctionCallContent  # type: ignore
from agentlabs.storage.transcript import Transcript  # type: ignore


def test_in_memory_transcript_messages_order():
    t = Transcript(root_dir=None)
    t.append_message(ChatMessage.user("hi"))
    t.append_message(ChatMessage.from_text("assistant", "ok"))
    msgs = t.messages
    assert [(m.role, m.text) for m in msgs] == [("user", "hi"), ("assistant", "ok")]
    assert t.path is None


def test_messages_is_a_copy():
    t = Transcript(messages=[ChatMessage.user("a")])
    t.messages.append(ChatMessage.user("b"))
    assert len(t.messages) == 1


def test_file_backed_writes_and_resume(tmp_path: Path):
    t = Transcript(root_dir=tmp_path, header_meta={"agent": "Joker"})
    sid = t.session_id
    t.append_message(ChatMessage.user("hello"))
    t.append_message(ChatMessage(role="assistant", contents=[FunctionCallContent("c1", "lookup", {"q": "x"})]))

    path = tmp_path / f"{sid}.jsonl"
    assert path == t.path
    lines = [json.loads(x) for x in path.read_text(encoding="utf-8").splitlines()]
    assert lines[0]["type"] == "header"
    assert lines[0]["meta"] == {"agent": "Joker"}
    assert lines[1]["type"] == "message" and lines[1]["message"]["role"] == "user"

    # Resume from same file id
    t2 = Transcript(root_dir=tmp_path, session_id=sid)
    msgs = t2.messages
    assert msgs[0].text == "hello"
    assert msgs[1].contents == [FunctionCallContent("c1", "lookup", {"q": "x"})]


def test_resume_skips_unreadable_lines(tmp_path: Path):
    path = tmp_path / "s1.jsonl"
    path.write_text(
        '{"type": "header", "session_id": "s1"}\n'
        "not json\n"
        '{"type": "message", "message": {"role": "user", "content": "legacy"}}\n',
        encoding="utf-8",
    )
    t = Transcript(root_dir=tmp_path, session_id="s1")
    assert [m.text for m in t.messages] == ["legacy"]
