from __future__ import annotations

import random
import time
import uuid
from typing import Any, Dict, List, Sequence, Tuple

import requests


def _normalize_url(base_url: str) -> str:
    return base_url.rstrip("/")


def new_session_id() -> str:
    return f"session-{uuid.uuid4().hex}"


def new_request_id() -> str:
    return f"req-{int(time.time() * 1000)}-{random.random():.8f}"


def send_chat(
    base_url: str,
    message: str,
    session_id: str,
    request_id: str,
    language: str,
    auto_analyze: bool = False,
    files: Sequence[Tuple[str, bytes, str]] = (),
) -> Tuple[Dict[str, Any] | None, str | None]:
    """POST one chat turn; returns (payload, error) like the other helpers."""
    url = f"{_normalize_url(base_url)}/api/chat"
    form = {
        "message": message,
        "sessionId": session_id,
        "requestId": request_id,
        "language": language,
        "autoAnalyze": "true" if auto_analyze else "false",
    }
    multipart = [("files", (name, data, mime)) for name, data, mime in files]
    try:
        response = requests.post(url, data=form, files=multipart or None, timeout=180)
    except requests.RequestException as exc:
        return None, f"Failed to reach /api/chat: {exc}"
    try:
        data = response.json()
    except ValueError as exc:
        return None, f"Invalid JSON returned by /api/chat: {exc}"
    if response.status_code == 499:
        return None, "Request cancelled."
    if response.status_code != 200:
        detail = data.get("message") or data.get("detail") or data.get("error") if isinstance(data, dict) else data
        return None, f"Chat failed ({response.status_code}): {detail}"
    return data, None


def cancel_chat(base_url: str, request_id: str) -> Tuple[Dict[str, Any] | None, str | None]:
    url = f"{_normalize_url(base_url)}/api/chat/cancel"
    try:
        response = requests.post(url, json={"requestId": request_id}, timeout=6)
        response.raise_for_status()
        return response.json(), None
    except requests.RequestException as exc:
        return None, f"Failed to cancel request: {exc}"
    except ValueError as exc:
        return None, f"Invalid JSON returned by /api/chat/cancel: {exc}"


def save_chat(base_url: str, session_id: str, chat_name: str) -> Tuple[Dict[str, Any] | None, str | None]:
    url = f"{_normalize_url(base_url)}/api/chat/save"
    try:
        response = requests.post(url, json={"sessionId": session_id, "chatName": chat_name or None}, timeout=10)
        if response.status_code == 404:
            return None, "Nothing to save yet: send a message first."
        response.raise_for_status()
        return response.json(), None
    except requests.RequestException as exc:
        return None, f"Failed to save chat: {exc}"
    except ValueError as exc:
        return None, f"Invalid JSON returned by /api/chat/save: {exc}"


def list_saved(base_url: str) -> Tuple[List[Dict[str, Any]], str | None]:
    url = f"{_normalize_url(base_url)}/api/chat/saved"
    try:
        response = requests.get(url, timeout=6)
        response.raise_for_status()
        data = response.json()
        if isinstance(data, list):
            return data, None
        return [], "Unexpected response format from /api/chat/saved."
    except requests.RequestException as exc:
        return [], f"Failed to list saved chats: {exc}"
    except ValueError as exc:
        return [], f"Invalid JSON returned by /api/chat/saved: {exc}"


def load_saved(base_url: str, filename: str) -> Tuple[Dict[str, Any] | None, str | None]:
    url = f"{_normalize_url(base_url)}/api/chat/load/{filename}"
    try:
        response = requests.get(url, timeout=6)
        response.raise_for_status()
        return response.json(), None
    except requests.RequestException as exc:
        return None, f"Failed to load chat: {exc}"
    except ValueError as exc:
        return None, f"Invalid JSON returned by /api/chat/load: {exc}"


def fetch_logs(base_url: str) -> Tuple[List[Dict[str, Any]], str | None]:
    url = f"{_normalize_url(base_url)}/logs"
    try:
        response = requests.get(url, timeout=6)
        response.raise_for_status()
        data = response.json()
        if isinstance(data, dict) and isinstance(data.get("logs"), list):
            return [dict(log) for log in data["logs"]], None
        return [], "Unexpected response format from /logs."
    except requests.RequestException as exc:
        return [], f"Failed to fetch logs: {exc}"
    except ValueError as exc:
        return [], f"Invalid JSON returned by /logs: {exc}"
