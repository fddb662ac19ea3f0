from __future__ import annotations
import json
import datetime as dt
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Literal

from agentlabs.core.messages import ChatMessage

Status = Literal['complete', 'partial']

logger = logging.getLogger(__name__)


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def new_session_id() -> str:
    return dt.datetime.now(dt.timezone.utc).strftime('%Y%m%d-%H%M%S-%f')


class Transcript:
    """
    Ordered message log for one conversation.
    - If root_dir is provided: file-backed JSONL at <root_dir>/<session_id>.jsonl
    - If root_dir is None: in-memory only
    - If a file already exists for session_id, it resumes from it
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        root_dir: Optional[Path] = None,
        header_meta: Optional[Dict] = None,
        messages: Optional[Iterable[ChatMessage]] = None,
    ):
        self._root_dir = Path(root_dir) if root_dir else None
        self._session_id = session_id or new_session_id()
        self._header_meta = header_meta or {}
        self._messages: List[ChatMessage] = []
        self._records: List[Dict] = []
        self._path: Optional[Path] = None

        if self._root_dir:
            self._root_dir.mkdir(parents=True, exist_ok=True)
            self._path = self._root_dir / f'{self._session_id}.jsonl'
            if self._path.exists() and self._path.stat().st_size > 0:
                self._load_from_file()
            else:
                self._write(self._header())
        else:
            self._records.append(self._header())

        for m in messages or ():
            self.append_message(m)

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def messages(self) -> List[ChatMessage]:
        # Shallow copy so callers cannot reorder the log
        return list(self._messages)

    def append_message(self, message: ChatMessage, status: Status = 'complete') -> None:
        rec = {
            'type': 'message',
            'ts': _now(),
            'status': status,
            'message': message.to_dict(),
        }
        if self._path:
            self._write(rec)
        else:
            self._records.append(rec)
        self._messages.append(message)

    # Internal helpers

    def _header(self) -> Dict:
        return {'type': 'header', 'ts': _now(), 'session_id': self._session_id, 'meta': self._header_meta}

    def _write(self, rec: Dict) -> None:
        with self._path.open('a', encoding='utf-8') as f:
            f.write(json.dumps(rec, ensure_ascii=False, default=str) + '\n')

    def _load_from_file(self) -> None:
        self._messages = []
        with self._path.open('r', encoding='utf-8') as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("skipping unreadable line %d in %s", lineno, self._path)
                    continue
                if obj.get('type') == 'message' and isinstance(obj.get('message'), dict):
                    self._messages.append(ChatMessage.from_dict(obj['message']))
