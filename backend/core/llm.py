# backend/core/llm.py
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import List, Optional

from .session_store import Part, Turn

DEFAULT_LANGUAGE = "English"

LANGUAGES: dict[str, str] = {
    "en-US": "English",
    "en-IN": "English",
    "hi-IN": "Hindi",
    "kn-IN": "Kannada",
    "te-IN": "Telugu",
    "ta-IN": "Tamil",
    "mr-IN": "Marathi",
    "gu-IN": "Gujarati",
    "bn-IN": "Bengali",
    "pa-IN": "Punjabi",
}

# Suggested replacements logged when the upstream reports an unknown model.
ALTERNATIVE_MODELS = ("gemini-2.0-flash", "gemini-2.5-flash", "gemini-2.0-flash-lite", "gemini-2.5-pro")


@dataclass
class LLMConfig:
    provider: str = "gemini"  # "gemini" | "ollama"
    model: str = "gemini-2.0-flash"
    api_key: Optional[str] = None
    endpoint: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2000


class UpstreamError(RuntimeError):
    """Raised by providers when the model call fails; status mirrors HTTP."""

    def __init__(self, message: str, status: int = 502) -> None:
        super().__init__(message)
        self.status = status

    @property
    def rate_limited(self) -> bool:
        return self.status == 429


def load_llm_config() -> LLMConfig:
    return LLMConfig(
        provider=os.getenv("LLM_PROVIDER", "gemini"),
        model=os.getenv("LLM_MODEL", "gemini-2.0-flash"),
        api_key=os.getenv("GEMINI_API_KEY") or os.getenv("LLM_API_KEY"),
        endpoint=os.getenv("LLM_ENDPOINT"),
        temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
        max_tokens=int(os.getenv("LLM_MAX_TOKENS", "2000")),
    )


def target_language(code: Optional[str]) -> str:
    return LANGUAGES.get(code or "", DEFAULT_LANGUAGE)


def tag_user_message(message: str, language: str) -> str:
    if language == DEFAULT_LANGUAGE:
        return message
    return f"[RESPOND IN {language} ONLY - NOT ENGLISH] {message}"


def with_language_primer(history: List[Turn], language: str) -> List[Turn]:
    """Prepend a user/model exchange pinning the reply language.

    The primer only goes upstream; it is never written to the session.
    """
    if language == DEFAULT_LANGUAGE:
        return list(history)
    primer = [
        Turn.user([Part.from_text(f"You must ALWAYS respond in {language} language. NEVER use English.")]),
        Turn.model(f"I will respond only in {language}."),
    ]
    return primer + list(history)
