from __future__ import annotations

from typing import Literal, Optional

CollaboratorOperation = Literal["transcribe", "generate_note", "redact"]
CollaboratorErrorCode = Literal[
    "NETWORK",
    "TIMEOUT",
    "INVALID_RESPONSE",
    "PII_DETECTED",
    "UPSTREAM",
]

_USER_MESSAGES: dict[str, str] = {
    "transcribe": "Transcription is unavailable right now. Please try again.",
    "generate_note": "Note generation is unavailable right now. Please try again.",
    "redact": "Server-side redaction is unavailable right now. Local redaction still applies.",
}

_PII_MESSAGE = "Identifying information was detected. Please redact before generating a note."


class CollaboratorError(RuntimeError):
    """Raised when an external collaborator call fails for any reason."""

    def __init__(
        self,
        operation: CollaboratorOperation,
        code: CollaboratorErrorCode,
        cause: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(f"{operation} failed: {code}")
        self.operation = operation
        self.code = code
        # Diagnostic only; must never carry transcript or note content.
        self.cause = cause
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        if self.code == "PII_DETECTED":
            return _PII_MESSAGE
        return _USER_MESSAGES.get(self.operation, "The request failed. Please try again.")


class OutboundBlockedError(RuntimeError):
    """Raised when the privacy gate refuses to let a payload leave the device."""

    user_message = (
        "Blocked: identifying information detected and the hard gate is enabled. "
        "Turn on sending redacted text or remove identifiers."
    )


class StorageUnavailableError(RuntimeError):
    """Raised by key-value backends that cannot be read or written."""


class GenerationInFlightError(RuntimeError):
    """Raised when a session is asked for a note while another is still pending."""

    user_message = "A note is already being generated for this visit. Please wait for it to finish."
