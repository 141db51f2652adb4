from __future__ import annotations

"""
Match displayed note lines to evidence records and summarize verification.

Design intent:
- Match on normalized (trimmed, case-folded) section + line text only.
- Treat a miss, verified=False and an unset verified flag the same way:
  no confirmed evidence.
- Resolve snippets for review only against the generation snapshot.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from careloop.evidence.models import NOTE_SECTIONS, EvidenceRecord
from careloop.evidence.resolver import resolve
from careloop.note.structured import GenerationSnapshot, StructuredNote


@dataclass(frozen=True)
class EvidenceStats:
    total: int
    verified_count: int
    unverified_count: int
    unset_count: int

    @property
    def score_pct(self) -> int:
        if not self.total:
            return 0
        return round(self.verified_count / self.total * 100)


@dataclass(frozen=True)
class ReviewedLine:
    section: str
    line: str
    record: Optional[EvidenceRecord]
    confirmed: bool
    snippet: str
    meta: Optional[str]


def normalize(value: str | None) -> str:
    return str(value or "").strip().casefold()


def find_evidence(
    evidence: Sequence[EvidenceRecord],
    section: str,
    line: str,
) -> Optional[EvidenceRecord]:
    wanted_section = normalize(section)
    wanted_line = normalize(line)
    for record in evidence:
        if normalize(record.section) == wanted_section and normalize(record.text) == wanted_line:
            return record
    return None


def is_confirmed(record: Optional[EvidenceRecord]) -> bool:
    return record is not None and record.verified is True


def evidence_stats(evidence: Sequence[EvidenceRecord]) -> EvidenceStats:
    total = len(evidence)
    verified = sum(1 for item in evidence if item.verified is True)
    unset = sum(1 for item in evidence if item.verified is None)
    return EvidenceStats(
        total=total,
        verified_count=verified,
        unverified_count=total - verified,
        unset_count=unset,
    )


def review_note(note: StructuredNote, snapshot: GenerationSnapshot) -> list[ReviewedLine]:
    reviewed: list[ReviewedLine] = []
    for section in NOTE_SECTIONS:
        for line in note.section_lines(section):
            record = find_evidence(note.evidence, section, line)
            if record is None:
                snippet, meta = "", None
            else:
                resolved = resolve(record, snapshot.transcript_used, snapshot.segments_used)
                snippet, meta = resolved.snippet, resolved.meta
            reviewed.append(
                ReviewedLine(
                    section=section,
                    line=line,
                    record=record,
                    confirmed=is_confirmed(record),
                    snippet=snippet,
                    meta=meta,
                )
            )
    return reviewed
