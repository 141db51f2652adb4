from __future__ import annotations

"""
Per-visit clinician workflow: scan, generate, review, hand off tasks.

Design intent:
- Every outbound send goes through the same gate decision a preview shows.
- A response is only accepted if its request is still the latest one.
- Storage problems degrade to warnings and audit events, never to silent loss.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Sequence
from uuid import uuid4

from careloop.collaborators.client import CollaboratorClient
from careloop.collaborators.sequencing import RequestSequencer
from careloop.evidence.linker import link_evidence
from careloop.evidence.matcher import EvidenceStats, ReviewedLine, evidence_stats, review_note
from careloop.evidence.models import TranscriptSegment, classify_all
from careloop.internal_core.audit import log_event
from careloop.internal_core.config import ShellConfig
from careloop.internal_core.contracts import AuditEvent, RemoteRedactionResult, TranscriptionResult
from careloop.internal_core.errors import CollaboratorError, GenerationInFlightError, OutboundBlockedError
from careloop.internal_core.session_store import SessionStorage, StorageResult
from careloop.note.structured import (
    GeneratedNote,
    GenerationSnapshot,
    SectionValue,
    StructuredNote,
)
from careloop.note.tasks import to_tasks
from careloop.privacy.detector import PhiFinding, detect, has_phi
from careloop.privacy.gate import Channel, GateDecision, PrivacyPolicy, decide
from careloop.privacy.redaction import redact, redact_segments

logger = logging.getLogger(__name__)

STORAGE_WARNING = "Session state could not be saved on this device."


@dataclass(frozen=True)
class ScanResult:
    findings: list[PhiFinding]
    redacted: str
    decision: GateDecision


@dataclass(frozen=True)
class NoteReview:
    lines: list[ReviewedLine]
    stats: EvidenceStats


@dataclass(frozen=True)
class TaskDelivery:
    tasks: list[str]
    storage_status: str


class ClinicianSession:
    def __init__(
        self,
        client: CollaboratorClient,
        storage: SessionStorage,
        config: ShellConfig,
        *,
        session_id: str | None = None,
        sequencer: RequestSequencer | None = None,
    ) -> None:
        self.session_id = session_id or uuid4().hex
        self.audit_trail: list[AuditEvent] = []
        self.last_note: GeneratedNote | None = None
        self._client = client
        self._storage = storage
        self._config = config
        self._sequencer = sequencer or RequestSequencer()
        self._in_flight = False

        loaded = storage.load_policy(config.default_policy())
        self.policy: PrivacyPolicy = loaded.value or config.default_policy()
        log_event(self.audit_trail, self.session_id, "SESSION_CREATED", loaded.status)
        self._note_storage(loaded, "policy")

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def scan(self, text: str, channel: Channel = "external") -> ScanResult:
        findings = detect(text)
        return ScanResult(
            findings=findings,
            redacted=redact(text),
            decision=decide(self.policy, findings, channel, text),
        )

    async def transcribe(self, audio: bytes, *, filename: str = "audio.wav") -> TranscriptionResult:
        return await self._client.transcribe(audio, filename=filename)

    async def redact_remote(self, text: str) -> RemoteRedactionResult:
        decision = self._gate(text)
        return await self._client.redact(decision.payload)

    async def generate(
        self,
        transcript: str,
        segments: Sequence[TranscriptSegment] | None = None,
    ) -> GeneratedNote | None:
        """Gate, send and link one note; returns None when a newer request superseded it."""
        text = transcript or ""
        if not text.strip():
            raise ValueError("Transcript is empty.")
        if self._in_flight:
            raise GenerationInFlightError(GenerationInFlightError.user_message)

        warnings: list[str] = []
        limit = self._config.CARELOOP_MAX_TRANSCRIPT_CHARS
        if len(text) > limit:
            text = text[:limit]
            logger.info("transcript_truncated session_id=%s limit=%s", self.session_id, limit)
            warnings.append(f"Transcript truncated to {limit} characters before sending.")

        decision = self._gate(text)
        sent_segments = self._gate_segments(decision, list(segments or []))
        snapshot = GenerationSnapshot(
            transcript_used=decision.payload,
            segments_used=tuple(sent_segments),
        )

        sequence = self._sequencer.issue()
        self._in_flight = True
        log_event(
            self.audit_trail,
            self.session_id,
            "NOTE_REQUESTED",
            decision.action,
            detail=f"seq={sequence} chars={len(snapshot.transcript_used)} segments={len(sent_segments)}",
        )
        started = time.perf_counter()
        try:
            result = await self._client.generate_note(
                snapshot.transcript_used,
                segments=sent_segments,
                enforce_redaction=self.policy.hard_gate_enabled,
            )
        except CollaboratorError as exc:
            if not self._sequencer.is_latest(sequence):
                self._drop_stale(sequence, started)
                return None
            log_event(
                self.audit_trail,
                self.session_id,
                "NOTE_FAILED",
                exc.code,
                detail=f"seq={sequence} cause={exc.cause}",
                duration_ms=_elapsed_ms(started),
            )
            raise
        finally:
            self._in_flight = False

        if not self._sequencer.is_latest(sequence):
            self._drop_stale(sequence, started)
            return None

        note = StructuredNote(
            subjective=result.subjective,
            objective=result.objective,
            assessment=result.assessment,
            plan=result.plan,
            evidence=classify_all(result.evidence),
        )
        evidence_source = "collaborator"
        if not note.evidence:
            note = note.model_copy(update={"evidence": link_evidence(note, snapshot)})
            evidence_source = "local"

        for saved, label in (
            (self._storage.save_transcript(snapshot.transcript_used), "transcript"),
            (self._storage.save_segments(sent_segments), "segments"),
        ):
            if self._note_storage(saved, label) and STORAGE_WARNING not in warnings:
                warnings.append(STORAGE_WARNING)

        generated = GeneratedNote(
            note=note,
            snapshot=snapshot,
            sequence=sequence,
            gate_action=decision.action,
            warnings=[*warnings, *result.warnings],
            entities=result.entities,
            evidence_source=evidence_source,
        )
        self.last_note = generated
        log_event(
            self.audit_trail,
            self.session_id,
            "NOTE_RECEIVED",
            "OK",
            detail=f"seq={sequence} evidence={len(note.evidence)} source={evidence_source}",
            duration_ms=_elapsed_ms(started),
        )
        return generated

    def review(self) -> NoteReview:
        generated = self._require_note()
        return NoteReview(
            lines=review_note(generated.note, generated.snapshot),
            stats=evidence_stats(generated.note.evidence),
        )

    def send_plan_to_patient(self, plan: SectionValue | None = None) -> TaskDelivery:
        if plan is None:
            plan = self._require_note().note.plan
        tasks = to_tasks(plan, max_tasks=self._config.CARELOOP_MAX_TASKS)
        saved = self._storage.save_tasks(tasks)
        self._note_storage(saved, "tasks")
        log_event(self.audit_trail, self.session_id, "TASKS_SAVED", saved.status, detail=f"count={len(tasks)}")
        return TaskDelivery(tasks=tasks, storage_status=saved.status)

    def update_policy(self, **changes: Any) -> StorageResult[None]:
        unknown = sorted(set(changes) - set(PrivacyPolicy.model_fields))
        if unknown:
            raise ValueError(f"Unknown privacy setting(s): {', '.join(unknown)}")
        self.policy = PrivacyPolicy.model_validate({**self.policy.model_dump(), **changes})
        saved = self._storage.save_policy(self.policy)
        self._note_storage(saved, "policy")
        log_event(
            self.audit_trail,
            self.session_id,
            "POLICY_UPDATED",
            saved.status,
            detail=(
                f"hard_gate={self.policy.hard_gate_enabled} "
                f"send_redacted={self.policy.send_redacted_externally} "
                f"ephemeral={self.policy.ephemeral}"
            ),
        )
        return saved

    def _gate(self, text: str) -> GateDecision:
        findings = detect(text)
        decision = decide(self.policy, findings, "external", text)
        categories = ",".join(item.category for item in findings) or "none"
        log_event(
            self.audit_trail,
            self.session_id,
            "GATE_DECISION",
            decision.action,
            detail=f"categories={categories}",
        )
        if not decision.transmittable:
            raise OutboundBlockedError(OutboundBlockedError.user_message)
        return decision

    def _gate_segments(
        self,
        decision: GateDecision,
        segments: list[TranscriptSegment],
    ) -> list[TranscriptSegment]:
        if decision.action == "REDACTED":
            return redact_segments(segments)
        if not self.policy.hard_gate_enabled:
            return segments
        # Segment text can carry identifiers the truncated transcript no longer shows.
        if not any(has_phi(detect(segment.text)) for segment in segments):
            return segments
        if self.policy.send_redacted_externally:
            return redact_segments(segments)
        raise OutboundBlockedError(OutboundBlockedError.user_message)

    def _drop_stale(self, sequence: int, started: float) -> None:
        log_event(
            self.audit_trail,
            self.session_id,
            "STALE_RESPONSE_DROPPED",
            "STALE",
            detail=f"seq={sequence} latest={self._sequencer.latest}",
            duration_ms=_elapsed_ms(started),
        )

    def _require_note(self) -> GeneratedNote:
        if self.last_note is None:
            raise LookupError("No note has been generated in this session.")
        return self.last_note

    def _note_storage(self, result: StorageResult[Any], label: str) -> bool:
        if result.status != "unavailable":
            return False
        log_event(self.audit_trail, self.session_id, "STORAGE_UNAVAILABLE", result.status, detail=f"item={label}")
        return True


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000.0))
