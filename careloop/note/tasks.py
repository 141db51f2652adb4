from __future__ import annotations

"""
Turn a SOAP plan section into discrete patient tasks.
"""

import re

from careloop.note.structured import SectionValue, as_lines

DEFAULT_MAX_TASKS = 20
MIN_TASK_CHARS = 3

# A run of prefixes ("1. 2. ") is stripped whole so re-applying stays a no-op.
# A dot followed by a digit is a decimal ("2.5 mg"), not an ordinal.
_ORDINAL_PREFIX_RE = re.compile(r"^(?:\d+\.(?!\d)\s*)+")


def to_tasks(plan: SectionValue | None, *, max_tasks: int = DEFAULT_MAX_TASKS) -> list[str]:
    tasks: list[str] = []
    for line in as_lines(plan):
        cleaned = _ORDINAL_PREFIX_RE.sub("", line).strip()
        if len(cleaned) < MIN_TASK_CHARS:
            continue
        tasks.append(cleaned)
    return tasks[: max(0, int(max_tasks))]
