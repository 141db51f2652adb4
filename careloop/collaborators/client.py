from __future__ import annotations

"""HTTP client for the transcription, note-generation and redaction collaborators.

Every call is a bounded request/response round trip. Failures of any kind
(network, timeout, HTTP status, schema) surface as a single
``CollaboratorError`` whose ``user_message`` is safe to show. Response bodies
are validated as a whole: one bad field rejects the entire payload.

Nothing here logs request or response content, only sizes, status codes and
durations.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from careloop.evidence.models import TranscriptSegment
from careloop.internal_core.config import ShellConfig
from careloop.internal_core.contracts import (
    CollaboratorErrorBody,
    NoteGenerationRequest,
    NoteGenerationResult,
    RemoteRedactionResult,
    TranscriptionResult,
)
from careloop.internal_core.errors import CollaboratorError, CollaboratorOperation

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_PII_CODES = {"PII_DETECTED", "PII_DETECTED_OUTPUT"}


class CollaboratorClient:
    """Thin async wrapper over the collaborator HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_sec,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ShellConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CollaboratorClient":
        return cls(
            config.CARELOOP_API_BASE_URL,
            timeout_sec=config.CARELOOP_COLLABORATOR_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def transcribe(
        self,
        audio: bytes,
        *,
        filename: str = "audio.wav",
        mime_type: str = "audio/wav",
    ) -> TranscriptionResult:
        return await self._call(
            "transcribe",
            "/transcribe",
            TranscriptionResult,
            files={"audio": (filename, audio, mime_type)},
            size_hint=len(audio),
        )

    async def generate_note(
        self,
        transcript: str,
        *,
        segments: Optional[List[TranscriptSegment]] = None,
        enforce_redaction: bool = False,
    ) -> NoteGenerationResult:
        request = NoteGenerationRequest(
            transcript=transcript,
            segments=segments or None,
            enforce_redaction=enforce_redaction,
        )
        return await self._call(
            "generate_note",
            "/clinician/soap",
            NoteGenerationResult,
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
            size_hint=len(transcript),
        )

    async def redact(self, text: str) -> RemoteRedactionResult:
        return await self._call(
            "redact",
            "/privacy/redact",
            RemoteRedactionResult,
            json={"text": text},
            size_hint=len(text),
        )

    async def _call(
        self,
        operation: CollaboratorOperation,
        path: str,
        model: Type[ModelT],
        *,
        size_hint: int,
        json: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> ModelT:
        started = time.perf_counter()
        try:
            response = await self._client.post(path, json=json, files=files)
        except httpx.TimeoutException as exc:
            self._log_failure(operation, "TIMEOUT", started, size_hint)
            raise CollaboratorError(operation, "TIMEOUT", cause=type(exc).__name__) from exc
        except httpx.HTTPError as exc:
            self._log_failure(operation, "NETWORK", started, size_hint)
            raise CollaboratorError(operation, "NETWORK", cause=type(exc).__name__) from exc

        if response.status_code >= 400:
            code = "PII_DETECTED" if self._is_pii_refusal(response) else "UPSTREAM"
            self._log_failure(operation, code, started, size_hint, status=response.status_code)
            raise CollaboratorError(
                operation,
                code,
                cause=f"http_{response.status_code}",
                status_code=response.status_code,
            )

        try:
            parsed = model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            # ValueError covers bodies that are not JSON at all.
            self._log_failure(operation, "INVALID_RESPONSE", started, size_hint, status=response.status_code)
            raise CollaboratorError(
                operation,
                "INVALID_RESPONSE",
                cause=type(exc).__name__,
                status_code=response.status_code,
            ) from exc

        logger.info(
            "collaborator_ok op=%s status=%s input_len=%s elapsed_ms=%s",
            operation,
            response.status_code,
            size_hint,
            _elapsed_ms(started),
        )
        return parsed

    @staticmethod
    def _is_pii_refusal(response: httpx.Response) -> bool:
        if response.status_code != 400:
            return False
        try:
            body = CollaboratorErrorBody.model_validate(response.json())
        except (ValueError, ValidationError):
            return False
        return (body.code or "") in _PII_CODES

    @staticmethod
    def _log_failure(
        operation: str,
        code: str,
        started: float,
        size_hint: int,
        *,
        status: Optional[int] = None,
    ) -> None:
        logger.warning(
            "collaborator_failed op=%s code=%s status=%s input_len=%s elapsed_ms=%s",
            operation,
            code,
            status,
            size_hint,
            _elapsed_ms(started),
        )


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000.0))
