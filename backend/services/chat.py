"""Chat request handling around the session store.

The handler registers each request before calling the model, checks the
cancellation flag as soon as the call returns, and only then records the
exchange. The in-flight entry is always released, whatever the outcome.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from backend.core import llm_gemini, llm_ollama
from backend.core.config import settings
from backend.core.llm import LLMConfig, UpstreamError, tag_user_message, target_language, with_language_primer
from backend.core.session_store import InFlightRequest, Part, SessionStore, Turn
from backend.services.attachments import StoredUpload, to_part
from backend.services.suggestions import suggest

logger = logging.getLogger(__name__)

Provider = Callable[[LLMConfig, List[Turn], List[Part]], str]

PROVIDERS: Dict[str, Provider] = {
    "gemini": llm_gemini.generate_with_gemini,
    "ollama": llm_ollama.generate_with_ollama,
}

DEFAULT_FILE_PROMPT = "Please analyze these files."


class RequestCancelled(Exception):
    """The client cancelled the request while the model call was running."""

    def __init__(self, rid: str) -> None:
        super().__init__(f"Request {rid} cancelled")
        self.rid = rid


@dataclass
class ChatRequest:
    session_id: str
    message: str = ""
    request_id: Optional[str] = None
    language: Optional[str] = None
    auto_analyze: bool = False
    uploads: List[StoredUpload] = field(default_factory=list)


@dataclass
class ChatResult:
    response: str
    suggestions: List[str]
    session_id: str
    request_id: str


def new_request_id() -> str:
    return f"req-{int(time.time() * 1000)}-{random.randint(0, 10**9)}"


class ChatService:
    def __init__(
        self,
        store: SessionStore,
        llm_cfg: LLMConfig,
        provider: Optional[Provider] = None,
        retries: int = settings.rate_limit_retries,
        base_delay: float = settings.retry_base_delay,
    ) -> None:
        self.store = store
        self.llm_cfg = llm_cfg
        self.retries = retries
        self.base_delay = base_delay
        self._provider = provider

    @property
    def provider(self) -> Provider:
        if self._provider is not None:
            return self._provider
        try:
            return PROVIDERS[self.llm_cfg.provider]
        except KeyError:
            raise ValueError(f"Unsupported LLM provider '{self.llm_cfg.provider}'.") from None

    def complete(self, prompt: str) -> str:
        """One-shot generation outside any session."""
        return self.provider(self.llm_cfg, [], [Part.from_text(prompt)])

    def _call_with_retry(self, entry: InFlightRequest, history: List[Turn], parts: List[Part]) -> str:
        attempt = 0
        while True:
            try:
                return self.provider(self.llm_cfg, history, parts)
            except UpstreamError as exc:
                if not exc.rate_limited or attempt >= self.retries:
                    raise
                attempt += 1
                delay = self.base_delay * 2 ** (attempt - 1)
                logger.info("Rate limit hit. Retrying in %.1fs (attempt %d/%d)", delay, attempt, self.retries)
                if entry.cancelled.wait(delay):
                    raise RequestCancelled(entry.rid) from exc

    def handle(self, req: ChatRequest) -> ChatResult:
        if not (req.message or "").strip() and not req.uploads:
            raise ValueError("Message or files are required")

        rid = req.request_id or new_request_id()
        sid = req.session_id
        language = target_language(req.language)
        logger.info("Chat request %s for session %s, target language %s", rid, sid, language)

        text = tag_user_message(req.message or DEFAULT_FILE_PROMPT, language)
        parts = [Part.from_text(text)] + [to_part(u) for u in req.uploads]
        history = with_language_primer(self.store.history(sid), language)

        entry = self.store.begin_request(rid, handle={"provider": self.llm_cfg.provider, "model": self.llm_cfg.model})
        try:
            reply = self._call_with_retry(entry, history, parts)
            if self.store.is_cancelled(rid):
                raise RequestCancelled(rid)

            suggestions: List[str] = []
            if req.auto_analyze:
                reply, suggestions = suggest(reply, language, self.complete)

            if not self.store.append_unless_cancelled(rid, sid, Turn.user(parts), Turn.model(reply)):
                raise RequestCancelled(rid)
            return ChatResult(response=reply, suggestions=suggestions, session_id=sid, request_id=rid)
        finally:
            self.store.end_request(rid)


__all__ = ["ChatRequest", "ChatResult", "ChatService", "RequestCancelled", "new_request_id"]
