import threading

import pytest

from backend.core.llm import UpstreamError
from backend.services.attachments import StoredUpload
from backend.services.chat import ChatRequest, RequestCancelled, new_request_id


def test_successful_exchange_appends_two_turns(store, make_service, fake_provider):
    provider = fake_provider(replies=["Hello there"])
    result = make_service(provider).handle(ChatRequest(session_id="s1", message="Hi", request_id="r1"))

    assert result.response == "Hello there"
    assert result.request_id == "r1"
    history = store.history("s1")
    assert [t.role for t in history] == ["user", "model"]
    assert history[0].text() == "Hi"
    assert history[1].text() == "Hello there"
    assert store.in_flight() == 0


def test_history_is_sent_upstream(store, make_service, fake_provider):
    provider = fake_provider(replies=["first", "second"])
    service = make_service(provider)
    service.handle(ChatRequest(session_id="s1", message="one"))
    service.handle(ChatRequest(session_id="s1", message="two"))

    sent_history, sent_parts = provider.calls[1]
    assert [t.text() for t in sent_history] == ["one", "first"]
    assert sent_parts[0].text == "two"


def test_empty_message_without_files_is_rejected(store, make_service, fake_provider):
    provider = fake_provider()
    with pytest.raises(ValueError):
        make_service(provider).handle(ChatRequest(session_id="s1", message="   "))
    assert provider.calls == []
    assert store.get("s1") is None


def test_files_only_uses_default_prompt(tmp_path, store, make_service, fake_provider):
    note = tmp_path / "n.txt"
    note.write_text("notes", encoding="utf-8")
    provider = fake_provider(replies=["analysed"])
    make_service(provider).handle(
        ChatRequest(session_id="s1", uploads=[StoredUpload(path=note, original_name="notes.txt")])
    )
    _, parts = provider.calls[0]
    assert parts[0].text == "Please analyze these files."
    assert parts[1].text == "\n[File: notes.txt]\nnotes"


def test_non_english_primer_is_not_stored(store, make_service, fake_provider):
    provider = fake_provider(replies=["नमस्ते"])
    make_service(provider).handle(ChatRequest(session_id="s1", message="hello", language="hi-IN"))

    sent_history, sent_parts = provider.calls[0]
    assert [t.role for t in sent_history] == ["user", "model"]
    assert "Hindi" in sent_history[0].text()
    assert sent_parts[0].text == "[RESPOND IN Hindi ONLY - NOT ENGLISH] hello"
    stored = store.history("s1")
    assert len(stored) == 2
    assert stored[0].text() == "[RESPOND IN Hindi ONLY - NOT ENGLISH] hello"


def test_cancel_during_call_discards_result(store, make_service, blocking_provider):
    provider = blocking_provider
    service = make_service(provider)
    outcome = {}

    def run():
        try:
            outcome["result"] = service.handle(ChatRequest(session_id="s1", message="slow", request_id="r1"))
        except RequestCancelled as exc:
            outcome["cancelled"] = exc

    worker = threading.Thread(target=run)
    worker.start()
    assert provider.started.wait(5)
    assert store.cancel_request("r1") is True
    assert store.is_cancelled("r1") is True
    provider.release.set()
    worker.join(5)

    assert "result" not in outcome
    assert outcome["cancelled"].rid == "r1"
    assert store.history("s1") == []
    assert store.is_cancelled("r1") is False
    assert store.cancel_request("r1") is False


def test_cancel_after_completion_is_not_found(store, make_service, fake_provider):
    make_service(fake_provider(replies=["done"])).handle(ChatRequest(session_id="s1", message="x", request_id="r1"))
    assert store.cancel_request("r1") is False
    assert len(store.history("s1")) == 2


def test_rate_limit_is_retried(store, make_service, fake_provider):
    provider = fake_provider(
        replies=["finally"],
        errors=[UpstreamError("slow down", status=429), UpstreamError("slow down", status=429)],
    )
    result = make_service(provider).handle(ChatRequest(session_id="s1", message="hi"))
    assert result.response == "finally"
    assert len(provider.calls) == 3


def test_rate_limit_gives_up_after_retries(store, make_service, fake_provider):
    provider = fake_provider(errors=[UpstreamError("slow down", status=429)] * 4)
    with pytest.raises(UpstreamError) as info:
        make_service(provider, retries=3).handle(ChatRequest(session_id="s1", message="hi", request_id="r1"))
    assert info.value.status == 429
    assert len(provider.calls) == 4
    assert store.history("s1") == []
    assert store.in_flight() == 0


def test_other_upstream_errors_propagate_without_retry(store, make_service, fake_provider):
    provider = fake_provider(errors=[UpstreamError("boom", status=500)])
    with pytest.raises(UpstreamError):
        make_service(provider).handle(ChatRequest(session_id="s1", message="hi"))
    assert len(provider.calls) == 1
    assert store.in_flight() == 0


def test_cancel_during_backoff_stops_retrying(store, make_service):
    service = make_service(None, base_delay=5)

    def provider(cfg, history, parts):
        store.cancel_request("r1")
        raise UpstreamError("slow down", status=429)

    service._provider = provider
    with pytest.raises(RequestCancelled):
        service.handle(ChatRequest(session_id="s1", message="hi", request_id="r1"))
    assert store.in_flight() == 0


def test_auto_analyze_extracts_suggestions(store, make_service, fake_provider):
    reply = "A cat on a sofa.\n\nSuggested questions:\n1. What breed is it?\n2. Is it sleeping?"
    result = make_service(fake_provider(replies=[reply])).handle(
        ChatRequest(session_id="s1", message="look", auto_analyze=True)
    )
    assert result.suggestions == ["What breed is it?", "Is it sleeping?"]
    assert result.response == "A cat on a sofa."
    assert store.history("s1")[1].text() == "A cat on a sofa."


def test_auto_analyze_asks_model_when_reply_has_none(store, make_service, fake_provider):
    provider = fake_provider(replies=["A red bicycle.", "Who owns it?\nWhere is it parked?"])
    result = make_service(provider).handle(ChatRequest(session_id="s1", message="look", auto_analyze=True))
    assert result.suggestions == ["Who owns it?", "Where is it parked?"]
    history, parts = provider.calls[1]
    assert history == []
    assert "A red bicycle." in parts[0].text


def test_unknown_provider_is_rejected(store):
    from backend.core.llm import LLMConfig
    from backend.services.chat import ChatService

    service = ChatService(store, LLMConfig(provider="mystery"))
    with pytest.raises(ValueError):
        service.handle(ChatRequest(session_id="s1", message="hi"))


def test_cancel_during_suggestion_call_discards_result(store, make_service):
    asked_for_suggestions = threading.Event()
    release = threading.Event()
    calls = []

    def provider(cfg, history, parts):
        calls.append(parts)
        if len(calls) == 1:
            return "A red bicycle."
        asked_for_suggestions.set()
        release.wait(5)
        return "Who owns it?\nWhere is it parked?"

    service = make_service(provider)
    outcome = {}

    def run():
        try:
            outcome["result"] = service.handle(
                ChatRequest(session_id="s1", message="look", request_id="r1", auto_analyze=True)
            )
        except RequestCancelled as exc:
            outcome["cancelled"] = exc

    worker = threading.Thread(target=run)
    worker.start()
    assert asked_for_suggestions.wait(5)
    assert store.cancel_request("r1") is True
    release.set()
    worker.join(5)

    assert "result" not in outcome
    assert outcome["cancelled"].rid == "r1"
    assert store.history("s1") == []
    assert store.in_flight() == 0


def test_generated_request_ids_are_distinct():
    ids = {new_request_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(rid.startswith("req-") for rid in ids)
