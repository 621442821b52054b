# backend/core/llm_ollama.py
import os
from typing import List

import requests

from .llm import LLMConfig, UpstreamError
from .session_store import ROLE_MODEL, Part, Turn


def _message(role: str, parts) -> dict:
    msg = {
        "role": "assistant" if role == ROLE_MODEL else "user",
        "content": "\n".join(p.text for p in parts if p.text),
    }
    images = [p.data for p in parts if p.is_inline and (p.mime_type or "").startswith("image/")]
    if images:
        msg["images"] = images
    return msg


def generate_with_ollama(cfg: LLMConfig, history: List[Turn], parts: List[Part]) -> str:
    body = {
        "model": cfg.model,
        "messages": [_message(t.role, t.parts) for t in history] + [_message("user", parts)],
        "options": {"temperature": cfg.temperature, "num_predict": cfg.max_tokens},
        "stream": False,
    }
    url = cfg.endpoint or os.getenv("OLLAMA_URL", "http://localhost:11434/api/chat")
    try:
        r = requests.post(url, json=body, timeout=60)
    except requests.RequestException as exc:
        raise UpstreamError(f"Ollama request failed: {exc}") from exc
    if r.status_code != 200:
        raise UpstreamError(f"Ollama returned {r.status_code}: {r.text}", status=r.status_code)
    data = r.json()
    return ((data.get("message") or {}).get("content") or "").strip()
