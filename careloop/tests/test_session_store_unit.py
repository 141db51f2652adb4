import json

from careloop.evidence.models import TranscriptSegment
from careloop.internal_core.errors import StorageUnavailableError
from careloop.internal_core.session_store import (
    POLICY_KEY,
    SEGMENTS_KEY,
    TASKS_KEY,
    TRANSCRIPT_KEY,
    InMemoryKeyValueStore,
    SessionStorage,
)
from careloop.privacy.gate import PrivacyPolicy


class _UnavailableStore:
    def get(self, key: str):
        raise StorageUnavailableError("store offline")

    def set(self, key: str, value: str) -> None:
        raise StorageUnavailableError("store offline")

    def delete(self, key: str) -> None:
        raise StorageUnavailableError("store offline")

    def keys(self):
        raise StorageUnavailableError("store offline")


def test_missing_values_report_missing() -> None:
    storage = SessionStorage(InMemoryKeyValueStore())
    assert storage.load_transcript().status == "missing"
    assert storage.load_segments().status == "missing"
    assert storage.load_tasks().status == "missing"


def test_segments_are_stored_with_wire_field_names() -> None:
    store = InMemoryKeyValueStore()
    storage = SessionStorage(store)
    segments = [TranscriptSegment(start_ms=0, end_ms=1200, text="hello there")]
    assert storage.save_segments(segments).ok

    assert json.loads(store.get(SEGMENTS_KEY) or "[]") == [{"startMs": 0, "endMs": 1200, "text": "hello there"}]
    loaded = storage.load_segments()
    assert loaded.status == "ok"
    assert loaded.value == segments


def test_corrupt_tasks_report_invalid() -> None:
    store = InMemoryKeyValueStore()
    store.set(TASKS_KEY, "not json")
    assert SessionStorage(store).load_tasks().status == "invalid"


def test_ephemeral_policy_is_not_persisted() -> None:
    store = InMemoryKeyValueStore()
    result = SessionStorage(store).save_policy(PrivacyPolicy(ephemeral=True))
    assert result.status == "skipped"
    assert store.get(POLICY_KEY) is None


def test_switching_to_ephemeral_forgets_persisted_policy() -> None:
    store = InMemoryKeyValueStore()
    storage = SessionStorage(store)
    assert storage.save_policy(PrivacyPolicy(hard_gate_enabled=False, ephemeral=False)).ok

    result = storage.save_policy(PrivacyPolicy(hard_gate_enabled=False, ephemeral=True))
    assert result.status == "skipped"
    assert store.get(POLICY_KEY) is None

    reloaded = storage.load_policy(PrivacyPolicy())
    assert reloaded.status == "missing"
    assert reloaded.value is not None
    assert reloaded.value.hard_gate_enabled is True


def test_policy_is_persisted_and_merged_over_defaults() -> None:
    store = InMemoryKeyValueStore()
    storage = SessionStorage(store)
    store.set(POLICY_KEY, json.dumps({"sendRedactedToApi": False}))

    loaded = storage.load_policy(PrivacyPolicy(ephemeral=False))
    assert loaded.status == "ok"
    assert loaded.value is not None
    assert loaded.value.send_redacted_externally is False
    assert loaded.value.hard_gate_enabled is True
    assert loaded.value.ephemeral is False

    saved = storage.save_policy(PrivacyPolicy(hard_gate_enabled=False, ephemeral=False))
    assert saved.ok
    assert json.loads(store.get(POLICY_KEY) or "{}")["hardGateEnabled"] is False


def test_invalid_policy_falls_back_to_defaults() -> None:
    store = InMemoryKeyValueStore()
    store.set(POLICY_KEY, json.dumps({"hardGateEnabled": "sometimes"}))
    defaults = PrivacyPolicy()
    loaded = SessionStorage(store).load_policy(defaults)
    assert loaded.status == "invalid"
    assert loaded.value == defaults


def test_unavailable_backend_is_reported_not_raised() -> None:
    storage = SessionStorage(_UnavailableStore())
    assert storage.load_transcript().status == "unavailable"
    assert storage.save_tasks(["Rest"]).status == "unavailable"
    assert storage.load_policy(PrivacyPolicy()).status == "unavailable"
    assert storage.save_policy(PrivacyPolicy(ephemeral=True)).status == "unavailable"
    assert storage.clear_demo_data().status == "unavailable"


def test_clear_demo_data_removes_only_demo_keys() -> None:
    store = InMemoryKeyValueStore()
    for key in (TRANSCRIPT_KEY, TASKS_KEY, "patientDiary", "theme"):
        store.set(key, "x")
    result = SessionStorage(store).clear_demo_data()
    assert result.status == "ok"
    assert result.value == 3
    assert store.keys() == ["theme"]
