from __future__ import annotations

"""
Outbound payload gate.

Design intent:
- Decide, from findings plus an explicit policy, which payload may leave the device.
- Keep the decision pure so a preview and the real send compute the same result.
- Treat BLOCKED as a deliberate refusal: callers must not transmit anything.
"""

from dataclasses import dataclass
from typing import Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field

from careloop.privacy.detector import PhiFinding, detect, has_phi
from careloop.privacy.redaction import redact

Channel = Literal["local", "external"]
GateAction = Literal["RAW", "REDACTED", "BLOCKED"]


class PrivacyPolicy(BaseModel):
    """User-controlled privacy switches.

    Field aliases match the persisted preference document.
    """

    model_config = ConfigDict(populate_by_name=True)

    hard_gate_enabled: bool = Field(default=True, alias="hardGateEnabled")
    send_redacted_externally: bool = Field(default=True, alias="sendRedactedToApi")
    ephemeral: bool = Field(default=True, alias="ephemeralMode")


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    payload: str

    @property
    def transmittable(self) -> bool:
        return self.action != "BLOCKED"


def decide(
    policy: PrivacyPolicy,
    findings: Sequence[PhiFinding],
    channel: Channel,
    text: str,
) -> GateDecision:
    source = text or ""
    if channel == "local":
        return GateDecision(action="RAW", payload=source)
    if not policy.hard_gate_enabled:
        return GateDecision(action="RAW", payload=source)
    if not has_phi(findings):
        return GateDecision(action="RAW", payload=source)
    if policy.send_redacted_externally:
        return GateDecision(action="REDACTED", payload=redact(source))
    return GateDecision(action="BLOCKED", payload="")


def preview(policy: PrivacyPolicy, text: str, channel: Channel = "external") -> GateDecision:
    return decide(policy, detect(text), channel, text)
