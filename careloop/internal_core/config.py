from __future__ import annotations

import os
from dataclasses import dataclass

from careloop.privacy.gate import PrivacyPolicy


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


@dataclass(frozen=True)
class ShellConfig:
    CARELOOP_API_BASE_URL: str
    CARELOOP_COLLABORATOR_TIMEOUT_SECONDS: float
    CARELOOP_MAX_TRANSCRIPT_CHARS: int
    CARELOOP_MAX_TASKS: int
    CARELOOP_HARD_GATE_DEFAULT: bool
    CARELOOP_SEND_REDACTED_DEFAULT: bool
    CARELOOP_EPHEMERAL_DEFAULT: bool
    CARELOOP_LOG_LEVEL: str

    def default_policy(self) -> PrivacyPolicy:
        return PrivacyPolicy(
            hard_gate_enabled=self.CARELOOP_HARD_GATE_DEFAULT,
            send_redacted_externally=self.CARELOOP_SEND_REDACTED_DEFAULT,
            ephemeral=self.CARELOOP_EPHEMERAL_DEFAULT,
        )


def load_config() -> ShellConfig:
    return ShellConfig(
        CARELOOP_API_BASE_URL=_getenv_str("CARELOOP_API_BASE_URL", "http://localhost:4000"),
        CARELOOP_COLLABORATOR_TIMEOUT_SECONDS=max(
            0.1, _getenv_float("CARELOOP_COLLABORATOR_TIMEOUT_SECONDS", 30.0)
        ),
        CARELOOP_MAX_TRANSCRIPT_CHARS=max(1, _getenv_int("CARELOOP_MAX_TRANSCRIPT_CHARS", 50_000)),
        CARELOOP_MAX_TASKS=max(1, _getenv_int("CARELOOP_MAX_TASKS", 20)),
        CARELOOP_HARD_GATE_DEFAULT=_getenv_bool("CARELOOP_HARD_GATE_DEFAULT", True),
        CARELOOP_SEND_REDACTED_DEFAULT=_getenv_bool("CARELOOP_SEND_REDACTED_DEFAULT", True),
        CARELOOP_EPHEMERAL_DEFAULT=_getenv_bool("CARELOOP_EPHEMERAL_DEFAULT", True),
        CARELOOP_LOG_LEVEL=_getenv_str("CARELOOP_LOG_LEVEL", "INFO").upper(),
    )
