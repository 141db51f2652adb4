from __future__ import annotations

"""
Best-effort local PHI pattern detector.

Design intent:
- Scan free text with five fixed pattern categories, in a fixed order.
- Report per-category counts plus a few example matches for UI review.
- Stay demo-grade: categories may overlap and are never deduplicated.
"""

import re
from dataclasses import dataclass
from typing import Literal, Sequence

PhiCategory = Literal["email", "phone", "address", "dob", "id_like"]

_MAX_EXAMPLES = 3

# Digit and word-boundary classes are ASCII-only; non-Latin digits never count.
# Whitespace still covers the Unicode spaces (NBSP, thin space, ...) found in pasted text.
_WS = r"[\s\u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]"

PHI_PATTERNS: list[tuple[PhiCategory, re.Pattern[str]]] = [
    (
        "email",
        re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE | re.ASCII),
    ),
    (
        "phone",
        re.compile(
            rf"(\+?\d{{1,3}}(?:{_WS}|-)?)?(\(?\d{{2,3}}\)?(?:{_WS}|-)?)?\d{{3}}(?:{_WS}|-)?\d{{3,4}}\b",
            re.ASCII,
        ),
    ),
    (
        "address",
        re.compile(
            rf"\b(\d{{1,4}}{_WS}+)?[A-Za-zÀ-ž.'-]+{_WS}+"
            r"(street|st|road|rd|ave|avenue|utca|u\.|[úÚ]t|krt\.|k[öÖ]r[úÚ]t)\b",
            re.IGNORECASE | re.ASCII,
        ),
    ),
    (
        "dob",
        re.compile(
            r"\b(19|20)\d{2}[.\-/ ](0?[1-9]|1[0-2])[.\-/ ](0?[1-9]|[12]\d|3[01])\b",
            re.ASCII,
        ),
    ),
    ("id_like", re.compile(r"\b\d{9,}\b", re.ASCII)),
]


@dataclass(frozen=True)
class PhiFinding:
    category: PhiCategory
    count: int
    examples: tuple[str, ...]


def detect(text: str) -> list[PhiFinding]:
    """Return one finding per category that matched, in fixed category order."""
    source = text or ""
    findings: list[PhiFinding] = []
    for category, pattern in PHI_PATTERNS:
        matches = [match.group(0) for match in pattern.finditer(source)]
        if not matches:
            continue
        findings.append(
            PhiFinding(
                category=category,
                count=len(matches),
                examples=tuple(_first_distinct(matches, limit=_MAX_EXAMPLES)),
            )
        )
    return findings


def has_phi(findings: Sequence[PhiFinding]) -> bool:
    return any(item.count > 0 for item in findings)


def total_occurrences(findings: Sequence[PhiFinding]) -> int:
    return sum(item.count for item in findings)


def _first_distinct(items: Sequence[str], *, limit: int) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
        if len(out) >= limit:
            break
    return out
