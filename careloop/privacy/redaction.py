from __future__ import annotations

"""
Mask identifying text with fixed per-category tokens.

Design intent:
- Reuse the detector patterns, in the detector order, so masking covers what is reported.
- Keep output deterministic; this is not a production PHI scrubber.
"""

from typing import Sequence

from careloop.evidence.models import TranscriptSegment
from careloop.privacy.detector import PHI_PATTERNS, PhiCategory

REDACTION_TOKENS: dict[PhiCategory, str] = {
    "email": "[REDACTED_EMAIL]",
    "phone": "[REDACTED_PHONE]",
    "address": "[REDACTED_ADDR]",
    "dob": "[REDACTED_DATE]",
    "id_like": "[REDACTED_ID]",
}


def redact(text: str) -> str:
    # A token inserted by an earlier category can in principle satisfy a later
    # pattern, so redact(redact(x)) is not guaranteed to equal redact(x).
    redacted = text or ""
    for category, pattern in PHI_PATTERNS:
        redacted = pattern.sub(REDACTION_TOKENS[category], redacted)
    return redacted


def redact_segments(segments: Sequence[TranscriptSegment]) -> list[TranscriptSegment]:
    out: list[TranscriptSegment] = []
    for segment in segments:
        masked = redact(segment.text)
        if not masked.strip():
            continue
        out.append(segment.model_copy(update={"text": masked}))
    return out
