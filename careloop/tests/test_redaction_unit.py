from careloop.evidence.models import TranscriptSegment
from careloop.privacy.detector import detect
from careloop.privacy.redaction import REDACTION_TOKENS, redact, redact_segments


def test_redact_masks_email_in_place() -> None:
    assert redact("Contact test@example.com now") == "Contact [REDACTED_EMAIL] now"


def test_redact_is_identity_without_findings() -> None:
    for text in ["", "Patient feels better today.", "Plan: rest and fluids"]:
        assert detect(text) == []
        assert redact(text) == text


def test_redact_masks_phone_separated_by_non_breaking_spaces() -> None:
    assert redact("Call 555\xa0123\xa04567 tomorrow") == "Call [REDACTED_PHONE] tomorrow"


def test_redact_uses_category_tokens() -> None:
    redacted = redact("MRN 123456789, seen at 4 Oak road")
    assert "123456789" not in redacted
    assert REDACTION_TOKENS["address"] in redacted


def test_redact_segments_masks_text_and_keeps_timing() -> None:
    segments = [
        TranscriptSegment(start_ms=0, end_ms=1000, text="email me at pat@home.net"),
        TranscriptSegment(start_ms=1000, end_ms=2000, text="headache for two days"),
    ]
    redacted = redact_segments(segments)
    assert [item.text for item in redacted] == [
        "email me at [REDACTED_EMAIL]",
        "headache for two days",
    ]
    assert [(item.start_ms, item.end_ms) for item in redacted] == [(0, 1000), (1000, 2000)]
    assert segments[0].text == "email me at pat@home.net"
