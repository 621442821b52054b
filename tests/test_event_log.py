from backend.event_log import EventLog


def test_recent_is_newest_first_and_filtered():
    log = EventLog(capacity=10)
    log.add("chat.success", {"request_id": "r1"})
    log.add("chat.cancel_signal", {"request_id": "r2", "found": True})
    log.add("chat.success", {"request_id": "r3"})

    assert [e["payload"]["request_id"] for e in log.recent()] == ["r3", "r2", "r1"]
    assert [e["payload"]["request_id"] for e in log.recent(kind="chat.success")] == ["r3", "r1"]
    assert len(log.recent(limit=1)) == 1
    assert log.recent(limit=0) == []


def test_totals_outlive_evicted_entries():
    log = EventLog(capacity=2)
    for i in range(5):
        log.add("chat.cancelled", {"request_id": f"r{i}"})
    log.add("archive.saved", {"filename": "a.json"})

    assert len(log.recent()) == 2
    assert log.totals() == {"chat.cancelled": 5, "archive.saved": 1}


def test_payload_is_copied_and_clear_resets():
    log = EventLog()
    payload = {"request_id": "r1"}
    log.add("chat.error", payload)
    payload["request_id"] = "changed"
    assert log.recent()[0]["payload"] == {"request_id": "r1"}

    log.clear()
    assert log.recent() == []
    assert log.totals() == {}
