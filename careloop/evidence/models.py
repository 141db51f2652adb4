from __future__ import annotations

"""
Typed evidence and transcript contracts.

Design intent:
- Enforce timestamp-valid segment payloads at collaborator boundaries.
- Classify raw evidence links once into an explicit tagged variant.
- Keep every variant immutable for the lifetime of a generated note.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

NoteSection = Literal["subjective", "objective", "assessment", "plan"]
NOTE_SECTIONS: tuple[NoteSection, ...] = ("subjective", "objective", "assessment", "plan")


class TranscriptSegment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start_ms: int = Field(ge=0, alias="startMs")
    end_ms: int = Field(ge=0, alias="endMs")
    text: str = Field(min_length=1)

    @model_validator(mode="after")
    def _validate_window(self) -> "TranscriptSegment":
        if self.end_ms < self.start_ms:
            raise ValueError("TranscriptSegment.end_ms must be >= TranscriptSegment.start_ms")
        return self


class EvidenceLink(BaseModel):
    """Raw evidence entry as returned by the note-generation collaborator."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    section: NoteSection
    text: str = Field(min_length=1)
    start_ms: Optional[int] = Field(default=None, ge=0, alias="startMs")
    end_ms: Optional[int] = Field(default=None, ge=0, alias="endMs")
    start: Optional[int] = Field(default=None, ge=0)
    end: Optional[int] = Field(default=None, ge=0)
    snippet: Optional[str] = None
    verified: Optional[bool] = None


class _EvidenceBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    section: str
    text: str
    verified: Optional[bool] = None


class SnippetEvidence(_EvidenceBase):
    kind: Literal["snippet"] = "snippet"
    snippet: str = Field(min_length=1)
    start_ms: Optional[int] = None
    end_ms: Optional[int] = None
    start: Optional[int] = None
    end: Optional[int] = None


class TimestampEvidence(_EvidenceBase):
    kind: Literal["timestamp"] = "timestamp"
    start_ms: int = Field(ge=0)
    end_ms: int = Field(ge=0)
    # Character span the resolver falls back to when no segments are available.
    start: Optional[int] = None
    end: Optional[int] = None

    @model_validator(mode="after")
    def _validate_window(self) -> "TimestampEvidence":
        if self.end_ms <= self.start_ms:
            raise ValueError("TimestampEvidence.end_ms must be > TimestampEvidence.start_ms")
        return self


class CharSpanEvidence(_EvidenceBase):
    kind: Literal["char_span"] = "char_span"
    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _validate_span(self) -> "CharSpanEvidence":
        if self.end <= self.start:
            raise ValueError("CharSpanEvidence.end must be > CharSpanEvidence.start")
        return self


class UnresolvedEvidence(_EvidenceBase):
    kind: Literal["unresolved"] = "unresolved"


EvidenceRecord = Annotated[
    Union[SnippetEvidence, TimestampEvidence, CharSpanEvidence, UnresolvedEvidence],
    Field(discriminator="kind"),
]


def classify_evidence(link: EvidenceLink) -> EvidenceRecord:
    common = {"section": link.section, "text": link.text, "verified": link.verified}
    if link.snippet:
        return SnippetEvidence(
            **common,
            snippet=link.snippet,
            start_ms=link.start_ms,
            end_ms=link.end_ms,
            start=link.start,
            end=link.end,
        )
    if _valid_window(link.start_ms, link.end_ms):
        return TimestampEvidence(
            **common,
            start_ms=link.start_ms,
            end_ms=link.end_ms,
            start=link.start if _valid_window(link.start, link.end) else None,
            end=link.end if _valid_window(link.start, link.end) else None,
        )
    if _valid_window(link.start, link.end):
        return CharSpanEvidence(**common, start=link.start, end=link.end)
    return UnresolvedEvidence(**common)


def classify_all(links: list[EvidenceLink]) -> list[EvidenceRecord]:
    return [classify_evidence(item) for item in links]


def _valid_window(start: Optional[int], end: Optional[int]) -> bool:
    return start is not None and end is not None and 0 <= start < end
