#!/usr/bin/env python3

"""
Demonstrate the polyglot-chat conversation and cancellation flow from the CLI.

Steps:
1. Sends two messages in one session, the second relying on the first.
2. Sends a third message and cancels it while the model is still working.
3. Saves the session and lists saved chats.
4. Displays the most recent server events.
"""

from __future__ import annotations

import json
import os
import sys
import threading
import time
import uuid
from typing import Any, Dict

import requests
import urllib3


def _bool_from_env(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def post_form(url: str, payload: Dict[str, Any], verify: bool) -> requests.Response:
    try:
        return requests.post(url, data=payload, timeout=120, verify=verify)
    except requests.RequestException as exc:
        raise SystemExit(f"Request to {url} failed: {exc}")


def post_json(url: str, payload: Dict[str, Any], verify: bool) -> requests.Response:
    try:
        return requests.post(url, json=payload, timeout=15, verify=verify)
    except requests.RequestException as exc:
        raise SystemExit(f"Request to {url} failed: {exc}")


def get_json(url: str, verify: bool) -> Any:
    try:
        response = requests.get(url, timeout=15, verify=verify)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as exc:
        raise SystemExit(f"Request to {url} failed: {exc}")


def chat(base_url: str, sid: str, rid: str, message: str, verify: bool) -> requests.Response:
    payload = {"message": message, "sessionId": sid, "requestId": rid, "language": os.getenv("DEMO_LANGUAGE", "en-US")}
    return post_form(f"{base_url}/api/chat", payload, verify=verify)


def main() -> None:
    base_url = os.getenv("POLYGLOT_BASE_URL", "http://localhost:8000").rstrip("/")
    verify_ssl = _bool_from_env(os.getenv("POLYGLOT_VERIFY_SSL"), default=True)
    if not verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    sid = f"demo-{uuid.uuid4().hex[:8]}"
    print(f"[1/4] Chatting in session {sid}")
    for i, message in enumerate(["My favourite colour is teal.", "What is my favourite colour?"], start=1):
        resp = chat(base_url, sid, f"req-demo-{i}", message, verify_ssl)
        if resp.status_code != 200:
            print(f"  ⚠ request failed ({resp.status_code}): {resp.text}")
            sys.exit(1)
        print(f"  > {message}")
        print(f"  < {resp.json().get('response', '')[:200]}")

    print("[2/4] Sending a long request and cancelling it")
    rid = "req-demo-cancel"
    outcome: Dict[str, Any] = {}
    worker = threading.Thread(
        target=lambda: outcome.update(resp=chat(base_url, sid, rid, "Write a 1500 word essay on tea.", verify_ssl))
    )
    worker.start()
    time.sleep(float(os.getenv("DEMO_CANCEL_AFTER", "0.5")))
    cancel = post_json(f"{base_url}/api/chat/cancel", {"requestId": rid}, verify=verify_ssl).json()
    print(f"  ✓ cancel: {cancel}")
    worker.join()
    print(f"  ✓ chat status: {outcome['resp'].status_code} {outcome['resp'].text[:120]}")

    print("[3/4] Saving the session")
    saved = post_json(f"{base_url}/api/chat/save", {"sessionId": sid, "chatName": "demo"}, verify=verify_ssl)
    print(f"  ✓ save: {saved.json()}")
    listing = get_json(f"{base_url}/api/chat/saved", verify=verify_ssl)
    print(json.dumps(listing[:3], indent=2))

    print("[4/4] Recent server events from /logs")
    logs = get_json(f"{base_url}/logs?limit=10", verify=verify_ssl)
    print(json.dumps([{"kind": e["kind"], "ts": e["ts"]} for e in logs.get("logs", [])], indent=2))


if __name__ == "__main__":
    main()
