from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from careloop.evidence.models import EvidenceLink, TranscriptSegment


class TranscriptionResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transcript: str
    segments: List[TranscriptSegment] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class NoteGenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = Field(min_length=1)
    segments: Optional[List[TranscriptSegment]] = None
    enforce_redaction: bool = Field(default=False, alias="enforceRedaction")


class NoteGenerationResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subjective: Union[List[str], str]
    objective: Union[List[str], str]
    assessment: Union[List[str], str]
    plan: Union[List[str], str]
    evidence: List[EvidenceLink] = Field(default_factory=list)
    entities: Optional[List[Dict[str, Any]]] = None
    warnings: List[str] = Field(default_factory=list)


class RemoteRedactionResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    redacted: str
    pii_detected: Optional[bool] = Field(default=None, alias="piiDetected")


class CollaboratorErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error: str = ""
    code: Optional[str] = None


AuditEventType = Literal[
    "SESSION_CREATED",
    "GATE_DECISION",
    "NOTE_REQUESTED",
    "NOTE_RECEIVED",
    "NOTE_FAILED",
    "STALE_RESPONSE_DROPPED",
    "TASKS_SAVED",
    "POLICY_UPDATED",
    "STORAGE_UNAVAILABLE",
]


class AuditEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ts_iso: str
    session_id: str
    type: AuditEventType
    code: str
    detail: str
    duration_ms: Optional[int] = None
