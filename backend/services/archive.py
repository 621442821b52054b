from __future__ import annotations

import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from backend.core.session_store import ROLE_MODEL, ROLE_USER, SessionStore

logger = logging.getLogger(__name__)


class ChatNotFound(LookupError):
    pass


_UNSAFE = re.compile(r"[^\w.-]+", re.ASCII)


def _file_stem(name: str) -> str:
    """Reduce a chat name to characters that are safe in a single path segment."""
    stem = _UNSAFE.sub("_", name).strip("._")
    return stem or "chat"


def _display_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert stored wire-form turns to what the chat UI renders."""
    converted: List[Dict[str, Any]] = []
    for msg in messages:
        texts = [p["text"] for p in msg.get("parts") or [] if isinstance(p, dict) and p.get("text")]
        content = " ".join(texts)
        if msg.get("role") == ROLE_USER:
            converted.append({"type": "user", "content": content or "User message", "files": []})
        elif msg.get("role") == ROLE_MODEL and content:
            converted.append({"type": "assistant", "content": content, "suggestions": []})
    return converted


class ChatArchive:
    """Saves session histories as JSON files and reads them back."""

    def __init__(self, store: SessionStore, directory: Path) -> None:
        self.store = store
        self.directory = Path(directory)

    def _path(self, filename: str) -> Path:
        if not filename or Path(filename).name != filename:
            raise ValueError("Invalid chat filename")
        return self.directory / filename

    def save(self, sid: str, chat_name: Optional[str] = None) -> str:
        history = self.store.get(sid)
        if history is None:
            raise ChatNotFound("Chat session not found")
        self.directory.mkdir(parents=True, exist_ok=True)
        filename = f"{_file_stem(chat_name or sid)}_{int(time.time() * 1000)}.json"
        doc = {
            "sessionId": sid,
            "chatName": chat_name or "Untitled Chat",
            "messages": [t.to_wire() for t in history],
            "savedAt": datetime.now(timezone.utc).isoformat(),
        }
        self._path(filename).write_text(json.dumps(doc, indent=2), encoding="utf-8")
        logger.info("Saved chat %s (%d turns) to %s", sid, len(history), filename)
        return filename

    def load(self, filename: str) -> Dict[str, Any]:
        path = self._path(filename)
        if not path.exists():
            raise ChatNotFound("Chat not found")
        doc = json.loads(path.read_text(encoding="utf-8"))
        messages = doc.get("messages")
        doc["messages"] = _display_messages(messages) if isinstance(messages, list) else []
        return doc

    def list(self) -> List[Dict[str, Any]]:
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            return []
        entries = []
        for path in self.directory.glob("*.json"):
            try:
                doc = json.loads(path.read_text(encoding="utf-8"))
                mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()
            except (OSError, ValueError) as exc:
                logger.error("Error reading saved chat %s: %s", path.name, exc)
                continue
            entries.append(
                {
                    "filename": path.name,
                    "chatName": doc.get("chatName") or "Unnamed Chat",
                    "savedAt": doc.get("savedAt") or mtime,
                    "messageCount": len(doc.get("messages") or []),
                }
            )
        entries.sort(key=lambda e: e["savedAt"], reverse=True)
        logger.info("Found %d saved chats", len(entries))
        return entries


__all__ = ["ChatArchive", "ChatNotFound"]
