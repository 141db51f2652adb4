from careloop.internal_core.audit import MAX_DETAIL_CHARS, log_event
from careloop.internal_core.contracts import AuditEvent


def test_log_event_appends_metadata_event() -> None:
    trail: list[AuditEvent] = []
    event = log_event(trail, "visit-1", "GATE_DECISION", "REDACTED", detail="categories=email", duration_ms=3)
    assert trail == [event]
    assert event.type == "GATE_DECISION"
    assert event.detail == "categories=email"
    assert event.duration_ms == 3
    assert event.ts_iso.endswith("+00:00")


def test_log_event_masks_and_flattens_detail() -> None:
    trail: list[AuditEvent] = []
    event = log_event(trail, "visit-1", "NOTE_FAILED", "UPSTREAM", detail="cause=x\nreply to a@b.io")
    assert "\n" not in event.detail
    assert "a@b.io" not in event.detail
    assert "[REDACTED_EMAIL]" in event.detail


def test_log_event_caps_detail_length() -> None:
    trail: list[AuditEvent] = []
    event = log_event(trail, "visit-1", "NOTE_REQUESTED", "RAW", detail="x" * 500)
    assert len(event.detail) == MAX_DETAIL_CHARS + 1
    assert event.detail.endswith("…")
