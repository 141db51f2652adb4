from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from threading import RLock
from typing import Any, Dict, Generic, List, Literal, Optional, Protocol, TypeVar

from pydantic import TypeAdapter, ValidationError

from careloop.evidence.models import TranscriptSegment
from careloop.privacy.gate import PrivacyPolicy

from .errors import StorageUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

StorageStatus = Literal["ok", "missing", "invalid", "unavailable", "skipped"]

TRANSCRIPT_KEY = "careloop.demoTranscript.v1"
SEGMENTS_KEY = "careloop.lastSegments.v1"
TASKS_KEY = "careloop.planTasks.v1"
POLICY_KEY = "careloop_privacy_prefs_v1"

_DEMO_KEY_RE = re.compile(
    r"(careloop|patient|clinician|soap|diary|tasks|demo|visit|report|reports|lab|labs|finding|findings)",
    re.IGNORECASE,
)

_SEGMENTS_ADAPTER = TypeAdapter(List[TranscriptSegment])
_TASKS_ADAPTER = TypeAdapter(List[str])


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items.keys())


@dataclass(frozen=True)
class StorageResult(Generic[T]):
    status: StorageStatus
    value: Optional[T] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class SessionStorage:
    """Typed access to the host key-value store for session state."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load_transcript(self) -> StorageResult[str]:
        return self._read(TRANSCRIPT_KEY)

    def save_transcript(self, transcript: str) -> StorageResult[None]:
        return self._write(TRANSCRIPT_KEY, transcript)

    def load_segments(self) -> StorageResult[List[TranscriptSegment]]:
        return self._read_json(SEGMENTS_KEY, _SEGMENTS_ADAPTER)

    def save_segments(self, segments: List[TranscriptSegment]) -> StorageResult[None]:
        payload = _SEGMENTS_ADAPTER.dump_json(segments, by_alias=True).decode("utf-8")
        return self._write(SEGMENTS_KEY, payload)

    def load_tasks(self) -> StorageResult[List[str]]:
        return self._read_json(TASKS_KEY, _TASKS_ADAPTER)

    def save_tasks(self, tasks: List[str]) -> StorageResult[None]:
        return self._write(TASKS_KEY, json.dumps(list(tasks), ensure_ascii=False))

    def load_policy(self, defaults: PrivacyPolicy) -> StorageResult[PrivacyPolicy]:
        raw = self._read(POLICY_KEY)
        if raw.status == "missing":
            return StorageResult("missing", defaults)
        if raw.status != "ok":
            return StorageResult(raw.status, defaults)
        try:
            stored = json.loads(raw.value or "")
            if not isinstance(stored, dict):
                raise ValueError("stored policy is not an object")
            merged = {**defaults.model_dump(by_alias=True), **stored}
            return StorageResult("ok", PrivacyPolicy.model_validate(merged))
        except (ValueError, ValidationError) as exc:
            logger.warning("storage_invalid key=%s error=%s", POLICY_KEY, type(exc).__name__)
            return StorageResult("invalid", defaults)

    def save_policy(self, policy: PrivacyPolicy) -> StorageResult[None]:
        if policy.ephemeral:
            # Switching to ephemeral also forgets what an earlier, persisted policy said.
            try:
                self._store.delete(POLICY_KEY)
            except StorageUnavailableError as exc:
                return self._unavailable(POLICY_KEY, exc)
            return StorageResult("skipped")
        return self._write(POLICY_KEY, policy.model_dump_json(by_alias=True))

    def clear_demo_data(self) -> StorageResult[int]:
        try:
            targets = [key for key in self._store.keys() if _DEMO_KEY_RE.search(key)]
            for key in targets:
                self._store.delete(key)
        except StorageUnavailableError as exc:
            return self._unavailable("*", exc)
        return StorageResult("ok", len(targets))

    def _read(self, key: str) -> StorageResult[str]:
        try:
            value = self._store.get(key)
        except StorageUnavailableError as exc:
            return self._unavailable(key, exc)
        if value is None:
            return StorageResult("missing")
        return StorageResult("ok", value)

    def _read_json(self, key: str, adapter: TypeAdapter[Any]) -> StorageResult[Any]:
        raw = self._read(key)
        if raw.status != "ok":
            return raw
        try:
            return StorageResult("ok", adapter.validate_json(raw.value or ""))
        except ValidationError as exc:
            logger.warning("storage_invalid key=%s errors=%s", key, exc.error_count())
            return StorageResult("invalid")

    def _write(self, key: str, value: str) -> StorageResult[None]:
        try:
            self._store.set(key, value)
        except StorageUnavailableError as exc:
            return self._unavailable(key, exc)
        return StorageResult("ok")

    def _unavailable(self, key: str, exc: Exception) -> StorageResult[Any]:
        logger.warning("storage_unavailable key=%s error=%s", key, type(exc).__name__)
        return StorageResult("unavailable")
