from __future__ import annotations

"""
Link note lines to transcript evidence when the generator returned none.

Design intent:
- Prefer timestamped segments; fall back to plain transcript search.
- Mark a line verified only when a minimal quality gate is met.
- Emit records through the same tagged variant the resolver consumes.
"""

import re
from typing import Sequence

from careloop.evidence.models import (
    NOTE_SECTIONS,
    EvidenceRecord,
    SnippetEvidence,
    TranscriptSegment,
    UnresolvedEvidence,
)
from careloop.note.structured import GenerationSnapshot, StructuredNote

MAX_LINES_PER_SECTION = 12
MAX_LINKS = 40
MIN_OVERLAP_SCORE = 2
MIN_SCORE_WORD_CHARS = 4
MIN_SEARCH_WORD_CHARS = 5
MIN_EXACT_NEEDLE_CHARS = 12

_NON_ALNUM_RE = re.compile(r"[^\w\s]|_")
_WS_RE = re.compile(r"\s+")


def link_evidence(note: StructuredNote, snapshot: GenerationSnapshot) -> list[EvidenceRecord]:
    if snapshot.segments_used:
        return link_by_segments(note, snapshot.segments_used)
    return link_by_search(snapshot.transcript_used, note)


def link_by_segments(
    note: StructuredNote,
    segments: Sequence[TranscriptSegment],
) -> list[EvidenceRecord]:
    out: list[EvidenceRecord] = []
    segment_words = [(segment, set(_score_words(segment.text))) for segment in segments]
    for section, line in _iter_lines(note):
        line_words = _score_words(line)
        best: TranscriptSegment | None = None
        best_score = -1
        for segment, words in segment_words:
            score = sum(1 for word in line_words if word in words)
            if score > best_score:
                best, best_score = segment, score

        if best is not None and best_score >= MIN_OVERLAP_SCORE:
            out.append(
                SnippetEvidence(
                    section=section,
                    text=line,
                    snippet=best.text,
                    start_ms=best.start_ms,
                    end_ms=best.end_ms,
                    verified=True,
                )
            )
        else:
            out.append(UnresolvedEvidence(section=section, text=line, verified=False))
    return out[:MAX_LINKS]


def link_by_search(transcript: str, note: StructuredNote) -> list[EvidenceRecord]:
    source = transcript or ""
    lowered = source.lower()
    out: list[EvidenceRecord] = []
    for section, line in _iter_lines(note):
        needle = _WS_RE.sub(" ", line.lower()).strip()
        idx = lowered.find(needle) if len(needle) >= MIN_EXACT_NEEDLE_CHARS else -1

        if idx < 0:
            keywords = [word for word in needle.split() if len(word) >= MIN_SEARCH_WORD_CHARS][:4]
            for word in keywords:
                found = lowered.find(word)
                if found >= 0:
                    idx = found
                    break

        if idx >= 0:
            start = max(0, idx - 10)
            end = min(len(source), idx + min(240, max(30, len(line) + 40)))
            out.append(
                SnippetEvidence(
                    section=section,
                    text=line,
                    snippet=source[start:end],
                    start=start,
                    end=end,
                    verified=True,
                )
            )
        else:
            out.append(UnresolvedEvidence(section=section, text=line, verified=False))
    return out[:MAX_LINKS]


def _iter_lines(note: StructuredNote) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for section in NOTE_SECTIONS:
        for line in note.section_lines(section)[:MAX_LINES_PER_SECTION]:
            pairs.append((section, line))
    return pairs


def _score_words(text: str) -> list[str]:
    cleaned = _NON_ALNUM_RE.sub(" ", (text or "").lower())
    return [word for word in cleaned.split() if len(word) >= MIN_SCORE_WORD_CHARS]
