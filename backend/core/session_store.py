"""In-memory conversation store with cooperative request cancellation.

A session groups conversation turns under a session id (sid). Each chat
request in flight is tracked under its request id (rid) so a concurrent
cancel call can flag it; the chat handler checks the flag once the
upstream call returns and drops the result instead of storing it.

State lives for the lifetime of the process. In production, replace with
a database-backed store.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from threading import Event, Lock
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_MAX_TURNS = 30

ROLE_USER = "user"
ROLE_MODEL = "model"


@dataclass(frozen=True)
class Part:
    """Either plain text or an inline base64 blob with a media type."""
    text: Optional[str] = None
    data: Optional[str] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def inline(cls, data: str, mime_type: str) -> "Part":
        return cls(data=data, mime_type=mime_type)

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    def to_wire(self) -> Dict[str, Any]:
        if self.is_inline:
            return {"inlineData": {"data": self.data, "mimeType": self.mime_type}}
        return {"text": self.text or ""}


@dataclass(frozen=True)
class Turn:
    role: str
    parts: Tuple[Part, ...]

    @classmethod
    def user(cls, parts: List[Part]) -> "Turn":
        return cls(role=ROLE_USER, parts=tuple(parts))

    @classmethod
    def model(cls, text: str) -> "Turn":
        return cls(role=ROLE_MODEL, parts=(Part.from_text(text),))

    def text(self, sep: str = " ") -> str:
        return sep.join(p.text for p in self.parts if p.text)

    def to_wire(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": [p.to_wire() for p in self.parts]}


@dataclass
class InFlightRequest:
    rid: str
    handle: Any = None
    cancelled: Event = field(default_factory=Event)


class SessionStore:
    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS) -> None:
        self.max_turns = max_turns
        self._sessions: Dict[str, List[Turn]] = {}
        self._requests: Dict[str, InFlightRequest] = {}
        self._lock = Lock()

    # -- conversation history -------------------------------------------

    def history(self, sid: str) -> List[Turn]:
        """Return a snapshot of the session's turns, registering unseen sids."""
        with self._lock:
            return list(self._sessions.setdefault(sid, []))

    def _extend(self, sid: str, turns) -> None:
        history = self._sessions.setdefault(sid, [])
        history.extend(turns)
        overflow = len(history) - self.max_turns
        if overflow > 0:
            del history[:overflow]

    def append(self, sid: str, *turns: Turn) -> None:
        with self._lock:
            self._extend(sid, turns)

    def append_unless_cancelled(self, rid: str, sid: str, *turns: Turn) -> bool:
        """Append only while rid is not flagged; False means the turns were dropped."""
        with self._lock:
            entry = self._requests.get(rid)
            if entry is not None and entry.cancelled.is_set():
                return False
            self._extend(sid, turns)
            return True

    def get(self, sid: str) -> Optional[List[Turn]]:
        with self._lock:
            history = self._sessions.get(sid)
            return list(history) if history is not None else None

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    # -- in-flight requests ---------------------------------------------

    def begin_request(self, rid: str, handle: Any = None) -> InFlightRequest:
        entry = InFlightRequest(rid=rid, handle=handle)
        with self._lock:
            # a stale entry under the same rid is replaced
            self._requests[rid] = entry
        return entry

    def cancel_request(self, rid: str) -> bool:
        with self._lock:
            entry = self._requests.get(rid)
            if entry is None:
                return False
            entry.cancelled.set()
            return True

    def is_cancelled(self, rid: str) -> bool:
        with self._lock:
            entry = self._requests.get(rid)
            return entry is not None and entry.cancelled.is_set()

    def end_request(self, rid: str) -> None:
        with self._lock:
            self._requests.pop(rid, None)

    def in_flight(self) -> int:
        with self._lock:
            return len(self._requests)
