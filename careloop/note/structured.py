from __future__ import annotations

"""
Structured SOAP note plus the frozen snapshot it was generated from.

Design intent:
- Accept sections as either one string or a list of lines, as generators return them.
- Pin the exact transcript/segments sent for generation so evidence never drifts.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from careloop.evidence.models import NoteSection, EvidenceRecord, TranscriptSegment

SectionValue = Union[list[str], str]

_LINE_SPLIT_RE = re.compile(r"[\n•-]")


def as_lines(value: SectionValue | None) -> list[str]:
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    text = str(value or "").strip()
    if not text:
        return []
    parts = [part.strip() for part in _LINE_SPLIT_RE.split(text) if part.strip()]
    return parts or [text]


class StructuredNote(BaseModel):
    model_config = ConfigDict(frozen=True)

    subjective: SectionValue = ""
    objective: SectionValue = ""
    assessment: SectionValue = ""
    plan: SectionValue = ""
    evidence: list[EvidenceRecord] = Field(default_factory=list)

    def section_lines(self, section: NoteSection) -> list[str]:
        return as_lines(getattr(self, section))


@dataclass(frozen=True)
class GenerationSnapshot:
    transcript_used: str
    segments_used: tuple[TranscriptSegment, ...] = ()


@dataclass(frozen=True)
class GeneratedNote:
    note: StructuredNote
    snapshot: GenerationSnapshot
    sequence: int
    gate_action: str = "RAW"
    warnings: list[str] = field(default_factory=list)
    entities: list[dict[str, Any]] | None = None
    evidence_source: str = "collaborator"
