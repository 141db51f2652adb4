from __future__ import annotations

"""
Resolve one evidence record into a human-viewable transcript snippet.

Design intent:
- Always resolve against the transcript/segments snapshot used for generation.
- Dispatch once on the evidence variant; no silent fallthrough between shapes.
- Degrade to an empty snippet instead of failing.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from careloop.evidence.models import (
    CharSpanEvidence,
    EvidenceRecord,
    SnippetEvidence,
    TimestampEvidence,
    TranscriptSegment,
)

CONTEXT_LEFT_CHARS = 40
CONTEXT_RIGHT_CHARS = 80
MAX_SEGMENT_MATCHES = 4


@dataclass(frozen=True)
class ResolvedEvidence:
    snippet: str
    meta: Optional[str] = None


_EMPTY = ResolvedEvidence(snippet="", meta=None)


def stamp(ms: int) -> str:
    seconds = max(0, int(ms)) // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_time_range(start_ms: int, end_ms: int) -> str:
    return f"{stamp(start_ms)}–{stamp(end_ms)}"


def format_char_span(start: int, end: int) -> str:
    return f"[{start}, {end}]"


def resolve(
    evidence: EvidenceRecord,
    transcript_used: str,
    segments_used: Sequence[TranscriptSegment],
) -> ResolvedEvidence:
    if isinstance(evidence, SnippetEvidence):
        return ResolvedEvidence(snippet=evidence.snippet, meta=_snippet_meta(evidence))
    if isinstance(evidence, TimestampEvidence):
        if segments_used:
            return ResolvedEvidence(
                snippet=_join_overlapping_segments(
                    segments_used, start_ms=evidence.start_ms, end_ms=evidence.end_ms
                ),
                meta=format_time_range(evidence.start_ms, evidence.end_ms),
            )
        if evidence.start is not None and evidence.end is not None:
            return _resolve_char_span(transcript_used, start=evidence.start, end=evidence.end)
        return _EMPTY
    if isinstance(evidence, CharSpanEvidence):
        return _resolve_char_span(transcript_used, start=evidence.start, end=evidence.end)
    return _EMPTY


def overlapping_segments(
    segments: Sequence[TranscriptSegment],
    *,
    start_ms: int,
    end_ms: int,
    limit: int = MAX_SEGMENT_MATCHES,
) -> list[TranscriptSegment]:
    # Non-strict overlap: a segment that only touches the window still counts.
    hits: list[TranscriptSegment] = []
    for segment in segments:
        if segment.end_ms >= start_ms and segment.start_ms <= end_ms:
            hits.append(segment)
            if len(hits) >= limit:
                break
    return hits


def _join_overlapping_segments(
    segments: Sequence[TranscriptSegment], *, start_ms: int, end_ms: int
) -> str:
    hits = overlapping_segments(segments, start_ms=start_ms, end_ms=end_ms)
    return " ".join(segment.text for segment in hits)


def _resolve_char_span(transcript: str, *, start: int, end: int) -> ResolvedEvidence:
    source = transcript or ""
    if not (0 <= start < end <= len(source)):
        return _EMPTY
    left = max(0, start - CONTEXT_LEFT_CHARS)
    right = min(len(source), end + CONTEXT_RIGHT_CHARS)
    return ResolvedEvidence(snippet=source[left:right], meta=format_char_span(start, end))


def _snippet_meta(evidence: SnippetEvidence) -> Optional[str]:
    if evidence.start_ms is not None and evidence.end_ms is not None:
        return format_time_range(evidence.start_ms, evidence.end_ms)
    if evidence.start is not None and evidence.end is not None:
        return format_char_span(evidence.start, evidence.end)
    return None
