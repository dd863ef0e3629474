from __future__ import annotations
import json
import threading
import uuid
import datetime as dt
from pathlib import Path
from typing import Any, Dict, List, Optional

from chatgate.core.errors import ConversationNotFound, PersistenceError
from chatgate.core.messages import ROLES


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


class ConversationStore:
    """
    Conversation store.
    - If root_dir is provided: one append-only JSONL file per conversation at <root_dir>/<id>.jsonl
      (header record, then message/touch records)
    - If root_dir is None: in-memory only
    - Existing files under root_dir are loaded on construction
    """

    def __init__(self, root_dir: Optional[Path] = None):
        self._root_dir = Path(root_dir) if root_dir else None
        self._lock = threading.Lock()
        self._records: Dict[str, List[Dict[str, Any]]] = {}

        if self._root_dir:
            try:
                self._root_dir.mkdir(parents=True, exist_ok=True)
                for path in sorted(self._root_dir.glob("*.jsonl")):
                    records = self._load_file(path)
                    if records:
                        self._records[path.stem] = records
            except OSError as e:
                raise PersistenceError(f"Cannot open conversation store at {self._root_dir}: {e}") from e

    @property
    def root_dir(self) -> Optional[Path]:
        return self._root_dir

    # ----- public API -----

    def create_conversation(
        self, title: Optional[str] = None, model: Optional[str] = None, provider: Optional[str] = None
    ) -> Dict[str, Any]:
        cid = uuid.uuid4().hex
        header = {
            "type": "header",
            "ts": _now(),
            "id": cid,
            "title": title or "New conversation",
            "model": model,
            "provider": provider,
        }
        with self._lock:
            self._write(cid, header, new=True)
            self._records[cid] = [header]
            return self._summary(cid)

    def list_conversations(self) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [self._summary(cid) for cid in self._records]
        return sorted(rows, key=lambda r: r["updated_at"], reverse=True)

    def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        with self._lock:
            records = self._get(conversation_id)
            messages = [self._message_view(r) for r in records if r.get("type") == "message"]
            return {"conversation": self._summary(conversation_id), "messages": messages}

    def append_message(self, conversation_id: str, role: str, content: str) -> Dict[str, Any]:
        if role not in ROLES:
            raise PersistenceError(f"Invalid role: {role!r}")
        rec = {
            "type": "message",
            "ts": _now(),
            "id": uuid.uuid4().hex,
            "role": role,
            "content": content,
        }
        with self._lock:
            records = self._get(conversation_id)
            self._write(conversation_id, rec)
            records.append(rec)
        return self._message_view(rec)

    def touch(self, conversation_id: str) -> None:
        rec = {"type": "touch", "ts": _now()}
        with self._lock:
            records = self._get(conversation_id)
            self._write(conversation_id, rec)
            records.append(rec)

    def delete_conversation(self, conversation_id: str) -> None:
        with self._lock:
            self._get(conversation_id)
            if self._root_dir:
                try:
                    self._path(conversation_id).unlink(missing_ok=True)
                except OSError as e:
                    raise PersistenceError(f"Cannot delete conversation {conversation_id}: {e}") from e
            del self._records[conversation_id]

    # Internal helpers

    def _path(self, conversation_id: str) -> Path:
        return self._root_dir / f"{conversation_id}.jsonl"

    def _get(self, conversation_id: str) -> List[Dict[str, Any]]:
        records = self._records.get(conversation_id)
        if records is None:
            raise ConversationNotFound(conversation_id)
        return records

    def _write(self, conversation_id: str, rec: Dict[str, Any], *, new: bool = False) -> None:
        if not self._root_dir:
            return
        try:
            with self._path(conversation_id).open("x" if new else "a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False) + "\n")
        except OSError as e:
            raise PersistenceError(f"Cannot write conversation {conversation_id}: {e}") from e

    def _summary(self, conversation_id: str) -> Dict[str, Any]:
        records = self._records[conversation_id]
        header = records[0]
        return {
            "id": header["id"],
            "title": header.get("title"),
            "model": header.get("model"),
            "provider": header.get("provider"),
            "created_at": header["ts"],
            "updated_at": records[-1]["ts"],
            "message_count": sum(1 for r in records if r.get("type") == "message"),
        }

    @staticmethod
    def _message_view(rec: Dict[str, Any]) -> Dict[str, Any]:
        return {"id": rec["id"], "role": rec["role"], "content": rec["content"], "created_at": rec["ts"]}

    @staticmethod
    def _load_file(path: Path) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except json.JSONDecodeError:
                    continue
                records.append(obj)
        if not records or records[0].get("type") != "header":
            return []
        return records
