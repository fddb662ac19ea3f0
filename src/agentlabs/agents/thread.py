# src/agentlabs/agents/thread.py
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from agentlabs.core.messages import ChatMessage, FunctionApprovalRequestContent, FunctionCallContent, content_from_dict, content_to_dict
from agentlabs.storage.transcript import Status, Transcript

SNAPSHOT_TYPE = "agent_thread"
SNAPSHOT_VERSION = 1


class AgentThread:
    """
    Conversation state carried across agent runs.

    Holds the message history (in a Transcript, optionally file-backed) and the
    tool calls awaiting human approval from the previous run.
    """

    def __init__(self, transcript: Optional[Transcript] = None):
        self.transcript = transcript or Transcript()
        # Tool calls from the last assistant turn, held until approvals arrive
        self.pending_calls: List[FunctionCallContent] = []
        self.pending_requests: List[FunctionApprovalRequestContent] = []

    @property
    def id(self) -> str:
        return self.transcript.session_id

    @property
    def messages(self) -> List[ChatMessage]:
        return self.transcript.messages

    def add_messages(self, messages: Iterable[ChatMessage], status: Status = "complete") -> None:
        for m in messages:
            self.transcript.append_message(m, status)

    @property
    def has_pending_approvals(self) -> bool:
        return bool(self.pending_requests)

    def clear_pending(self) -> None:
        self.pending_calls = []
        self.pending_requests = []

    # ----- snapshots -----

    def serialize(self) -> Dict[str, Any]:
        return {
            "type": SNAPSHOT_TYPE,
            "version": SNAPSHOT_VERSION,
            "session_id": self.id,
            "messages": [m.to_dict() for m in self.messages],
            "pending_calls": [content_to_dict(c) for c in self.pending_calls],
            "pending_requests": [content_to_dict(r) for r in self.pending_requests],
        }

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any], root_dir: Optional[Path] = None) -> "AgentThread":
        if snapshot.get("type") != SNAPSHOT_TYPE:
            raise ValueError(f"Not an agent thread snapshot (type={snapshot.get('type')!r})")
        if int(snapshot.get("version", 0)) > SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version {snapshot.get('version')}")
        messages = [ChatMessage.from_dict(m) for m in snapshot.get("messages") or []]
        transcript = Transcript(session_id=snapshot.get("session_id"), root_dir=root_dir)
        if not transcript.messages:
            for m in messages:
                transcript.append_message(m)
        thread = cls(transcript)
        thread.pending_calls = [content_from_dict(c) for c in snapshot.get("pending_calls") or []]
        thread.pending_requests = [content_from_dict(r) for r in snapshot.get("pending_requests") or []]
        return thread

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.serialize(), ensure_ascii=False, indent=2, default=str), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "AgentThread":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Thread snapshot not found: {path}")
        return cls.from_snapshot(json.loads(path.read_text(encoding="utf-8")))
