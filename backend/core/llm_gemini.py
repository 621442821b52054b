"""Google Gemini integration over the public generateContent REST API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from .llm import LLMConfig, UpstreamError
from .session_store import Part, Turn

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta"


def _contents(history: List[Turn], parts: List[Part]) -> List[Dict[str, Any]]:
    contents = [t.to_wire() for t in history]
    contents.append(Turn.user(parts).to_wire())
    return contents


def _extract_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        raise UpstreamError(f"Gemini returned no candidates: {feedback.get('blockReason', 'unknown')}")
    content = candidates[0].get("content") or {}
    return "".join(p.get("text", "") for p in content.get("parts") or []).strip()


def generate_with_gemini(cfg: LLMConfig, history: List[Turn], parts: List[Part]) -> str:
    if not cfg.api_key:
        raise UpstreamError("GEMINI_API_KEY is not set.", status=500)
    base = (cfg.endpoint or GEMINI_URL).rstrip("/")
    url = f"{base}/models/{cfg.model}:generateContent"
    body = {
        "contents": _contents(history, parts),
        "generationConfig": {"maxOutputTokens": cfg.max_tokens, "temperature": cfg.temperature},
    }
    try:
        r = requests.post(url, params={"key": cfg.api_key}, json=body, timeout=60)
    except requests.RequestException as exc:
        raise UpstreamError(f"Gemini request failed: {exc}") from exc

    if r.status_code != 200:
        try:
            message = r.json().get("error", {}).get("message") or r.text
        except ValueError:
            message = r.text
        logger.warning("Gemini returned %s for model %s", r.status_code, cfg.model)
        raise UpstreamError(f"Gemini returned {r.status_code}: {message}", status=r.status_code)

    try:
        data = r.json()
    except ValueError as exc:
        raise UpstreamError(f"Failed to parse Gemini response JSON: {exc}") from exc
    return _extract_text(data)


__all__ = ["generate_with_gemini"]
