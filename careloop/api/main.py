from __future__ import annotations

"""
HTTP surface for the CareLoop clinician shell.

Design intent:
- Keep API orchestration thin and typed.
- Delegate privacy/evidence/note logic to the domain modules.
- Return generic, non-technical error details; never echo collaborator bodies.
"""

import logging
from typing import Any, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from careloop.collaborators.client import CollaboratorClient
from careloop.evidence.matcher import evidence_stats, review_note
from careloop.evidence.models import EvidenceLink, EvidenceRecord, TranscriptSegment, classify_all, classify_evidence
from careloop.evidence.resolver import resolve
from careloop.internal_core.config import ShellConfig, load_config
from careloop.internal_core.contracts import NoteGenerationResult
from careloop.internal_core.errors import CollaboratorError, GenerationInFlightError, OutboundBlockedError
from careloop.internal_core.session_store import InMemoryKeyValueStore, KeyValueStore, SessionStorage
from careloop.note.structured import GenerationSnapshot, SectionValue, StructuredNote
from careloop.session import ClinicianSession, NoteReview


class PhiFindingItem(BaseModel):
    category: str
    count: int
    examples: list[str] = Field(default_factory=list)


class PrivacyScanRequest(BaseModel):
    text: str = ""
    channel: Literal["local", "external"] = "external"


class PrivacyScanResponse(BaseModel):
    findings: list[PhiFindingItem] = Field(default_factory=list)
    redacted: str
    action: Literal["RAW", "REDACTED", "BLOCKED"]
    payload: str


class PrivacyPolicyResponse(BaseModel):
    hard_gate_enabled: bool
    send_redacted_externally: bool
    ephemeral: bool
    storage_status: str | None = None


class PrivacyPolicyUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hard_gate_enabled: bool | None = None
    send_redacted_externally: bool | None = None
    ephemeral: bool | None = None


class EvidenceResolveRequest(BaseModel):
    evidence: EvidenceLink
    transcript_used: str = ""
    segments_used: list[TranscriptSegment] = Field(default_factory=list)


class EvidenceResolveResponse(BaseModel):
    kind: str
    snippet: str
    meta: str | None = None


class ReviewedLineItem(BaseModel):
    section: str
    line: str
    confirmed: bool
    snippet: str = ""
    meta: str | None = None
    evidence_kind: str | None = None


class EvidenceStatsItem(BaseModel):
    total: int
    verified_count: int
    unverified_count: int
    unset_count: int
    score_pct: int


class NoteReviewRequest(BaseModel):
    note: NoteGenerationResult
    transcript_used: str = ""
    segments_used: list[TranscriptSegment] = Field(default_factory=list)


class NoteReviewResponse(BaseModel):
    lines: list[ReviewedLineItem] = Field(default_factory=list)
    stats: EvidenceStatsItem


class NoteTasksRequest(BaseModel):
    plan: Optional[SectionValue] = None


class NoteTasksResponse(BaseModel):
    tasks: list[str] = Field(default_factory=list)
    storage_status: str


class NoteGenerateRequest(BaseModel):
    transcript: str = Field(min_length=1)
    segments: list[TranscriptSegment] = Field(default_factory=list)


class NoteGenerateResponse(BaseModel):
    sequence: int
    gate_action: str
    subjective: SectionValue
    objective: SectionValue
    assessment: SectionValue
    plan: SectionValue
    evidence: list[EvidenceRecord] = Field(default_factory=list)
    evidence_source: str
    warnings: list[str] = Field(default_factory=list)
    entities: list[dict[str, Any]] | None = None


app = FastAPI(title="careloop clinician shell")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_config() -> ShellConfig:
    existing = getattr(app.state, "shell_config", None)
    if isinstance(existing, ShellConfig):
        return existing
    created = load_config()
    logging.getLogger("careloop").setLevel(created.CARELOOP_LOG_LEVEL)
    setattr(app.state, "shell_config", created)
    return created


def _get_kv_store() -> KeyValueStore:
    existing = getattr(app.state, "kv_store", None)
    if existing is not None:
        return existing
    created = InMemoryKeyValueStore()
    setattr(app.state, "kv_store", created)
    return created


def _get_collaborator_client() -> CollaboratorClient:
    existing = getattr(app.state, "collaborator_client", None)
    if existing is not None:
        return existing
    created = CollaboratorClient.from_config(_get_config())
    setattr(app.state, "collaborator_client", created)
    return created


def _get_session() -> ClinicianSession:
    existing = getattr(app.state, "clinician_session", None)
    if isinstance(existing, ClinicianSession):
        return existing
    created = ClinicianSession(
        _get_collaborator_client(),
        SessionStorage(_get_kv_store()),
        _get_config(),
    )
    setattr(app.state, "clinician_session", created)
    return created


def _policy_response(session: ClinicianSession, storage_status: str | None = None) -> PrivacyPolicyResponse:
    return PrivacyPolicyResponse(
        hard_gate_enabled=session.policy.hard_gate_enabled,
        send_redacted_externally=session.policy.send_redacted_externally,
        ephemeral=session.policy.ephemeral,
        storage_status=storage_status,
    )


def _review_response(review: NoteReview) -> NoteReviewResponse:
    return NoteReviewResponse(
        lines=[
            ReviewedLineItem(
                section=item.section,
                line=item.line,
                confirmed=item.confirmed,
                snippet=item.snippet,
                meta=item.meta,
                evidence_kind=item.record.kind if item.record is not None else None,
            )
            for item in review.lines
        ],
        stats=EvidenceStatsItem(
            total=review.stats.total,
            verified_count=review.stats.verified_count,
            unverified_count=review.stats.unverified_count,
            unset_count=review.stats.unset_count,
            score_pct=review.stats.score_pct,
        ),
    )


def _collaborator_http_error(exc: CollaboratorError) -> HTTPException:
    if exc.code == "PII_DETECTED":
        return HTTPException(status_code=400, detail={"error": exc.user_message, "code": exc.code})
    return HTTPException(status_code=502, detail=exc.user_message)


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/privacy/scan", response_model=PrivacyScanResponse)
async def privacy_scan(payload: PrivacyScanRequest) -> PrivacyScanResponse:
    result = _get_session().scan(payload.text, payload.channel)
    return PrivacyScanResponse(
        findings=[
            PhiFindingItem(category=item.category, count=item.count, examples=list(item.examples))
            for item in result.findings
        ],
        redacted=result.redacted,
        action=result.decision.action,
        payload=result.decision.payload,
    )


@app.get("/privacy/policy", response_model=PrivacyPolicyResponse)
async def get_privacy_policy() -> PrivacyPolicyResponse:
    return _policy_response(_get_session())


@app.put("/privacy/policy", response_model=PrivacyPolicyResponse)
async def update_privacy_policy(payload: PrivacyPolicyUpdateRequest) -> PrivacyPolicyResponse:
    session = _get_session()
    saved = session.update_policy(**payload.model_dump(exclude_none=True))
    return _policy_response(session, saved.status)


@app.post("/evidence/resolve", response_model=EvidenceResolveResponse)
async def resolve_evidence(payload: EvidenceResolveRequest) -> EvidenceResolveResponse:
    record = classify_evidence(payload.evidence)
    resolved = resolve(record, payload.transcript_used, payload.segments_used)
    return EvidenceResolveResponse(kind=record.kind, snippet=resolved.snippet, meta=resolved.meta)


@app.post("/note/review", response_model=NoteReviewResponse)
async def review_submitted_note(payload: NoteReviewRequest) -> NoteReviewResponse:
    note = StructuredNote(
        subjective=payload.note.subjective,
        objective=payload.note.objective,
        assessment=payload.note.assessment,
        plan=payload.note.plan,
        evidence=classify_all(payload.note.evidence),
    )
    snapshot = GenerationSnapshot(
        transcript_used=payload.transcript_used,
        segments_used=tuple(payload.segments_used),
    )
    return _review_response(
        NoteReview(lines=review_note(note, snapshot), stats=evidence_stats(note.evidence))
    )


@app.get("/note/review", response_model=NoteReviewResponse)
async def review_last_note() -> NoteReviewResponse:
    try:
        review = _get_session().review()
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _review_response(review)


@app.post("/note/tasks", response_model=NoteTasksResponse)
async def send_plan_tasks(payload: NoteTasksRequest) -> NoteTasksResponse:
    try:
        delivery = _get_session().send_plan_to_patient(payload.plan)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return NoteTasksResponse(tasks=delivery.tasks, storage_status=delivery.storage_status)


@app.post("/note/generate", response_model=NoteGenerateResponse)
async def generate_note(payload: NoteGenerateRequest) -> NoteGenerateResponse:
    session = _get_session()
    try:
        generated = await session.generate(payload.transcript, payload.segments)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except OutboundBlockedError as exc:
        raise HTTPException(status_code=409, detail=OutboundBlockedError.user_message) from exc
    except GenerationInFlightError as exc:
        raise HTTPException(status_code=409, detail=GenerationInFlightError.user_message) from exc
    except CollaboratorError as exc:
        logger.warning("note_generate_failed code=%s status=%s", exc.code, exc.status_code)
        raise _collaborator_http_error(exc) from exc

    if generated is None:
        raise HTTPException(status_code=409, detail="A newer note request replaced this one.")

    note = generated.note
    return NoteGenerateResponse(
        sequence=generated.sequence,
        gate_action=generated.gate_action,
        subjective=note.subjective,
        objective=note.objective,
        assessment=note.assessment,
        plan=note.plan,
        evidence=list(note.evidence),
        evidence_source=generated.evidence_source,
        warnings=generated.warnings,
        entities=generated.entities,
    )
