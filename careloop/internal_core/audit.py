from __future__ import annotations

import datetime as _dt
import logging
from typing import List, Optional

from careloop.privacy.redaction import redact

from .contracts import AuditEvent, AuditEventType

logger = logging.getLogger(__name__)

MAX_DETAIL_CHARS = 200


def _utc_now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat()


def _clean_detail(detail: str) -> str:
    # Callers pass counts and codes only; masking catches identifiers that slip through.
    cleaned = " ".join(redact(detail or "").split())
    if len(cleaned) > MAX_DETAIL_CHARS:
        cleaned = cleaned[:MAX_DETAIL_CHARS] + "…"
    return cleaned


def log_event(
    trail: List[AuditEvent],
    session_id: str,
    event_type: AuditEventType,
    code: str,
    detail: str = "",
    duration_ms: Optional[int] = None,
) -> AuditEvent:
    event = AuditEvent(
        ts_iso=_utc_now_iso(),
        session_id=session_id,
        type=event_type,
        code=code,
        detail=_clean_detail(detail),
        duration_ms=duration_ms,
    )
    trail.append(event)
    logger.info(
        "audit type=%s code=%s session_id=%s duration_ms=%s",
        event.type,
        event.code,
        event.session_id,
        event.duration_ms,
    )
    return event
