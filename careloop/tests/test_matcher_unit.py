from careloop.evidence.matcher import evidence_stats, find_evidence, is_confirmed, review_note
from careloop.evidence.models import CharSpanEvidence, SnippetEvidence, UnresolvedEvidence
from careloop.note.structured import GenerationSnapshot, StructuredNote


def _note() -> StructuredNote:
    return StructuredNote(
        subjective=["Headache for three days"],
        objective="Afebrile",
        assessment=["Tension headache"],
        plan=["Ibuprofen as needed"],
        evidence=[
            SnippetEvidence(
                section="subjective",
                text="headache for three days ",
                snippet="I have had a headache for three days",
                verified=True,
            ),
            CharSpanEvidence(section="Objective", text="AFEBRILE", start=0, end=8, verified=False),
            UnresolvedEvidence(section="plan", text="Ibuprofen as needed"),
        ],
    )


def test_find_evidence_matches_normalized_section_and_line() -> None:
    note = _note()
    record = find_evidence(note.evidence, "objective", "afebrile")
    assert record is not None
    assert record.kind == "char_span"
    assert find_evidence(note.evidence, "plan", "Rest") is None


def test_unset_and_false_verification_are_not_confirmed() -> None:
    note = _note()
    assert is_confirmed(note.evidence[0]) is True
    assert is_confirmed(note.evidence[1]) is False
    assert is_confirmed(note.evidence[2]) is False
    assert is_confirmed(None) is False


def test_evidence_stats_counts_unset_as_unverified() -> None:
    stats = evidence_stats(_note().evidence)
    assert stats.total == 3
    assert stats.verified_count == 1
    assert stats.unverified_count == 2
    assert stats.unset_count == 1
    assert stats.score_pct == 33


def test_evidence_stats_empty_scores_zero() -> None:
    stats = evidence_stats([])
    assert stats.total == 0
    assert stats.score_pct == 0


def test_review_note_resolves_against_snapshot() -> None:
    snapshot = GenerationSnapshot(transcript_used="Afebrile on exam today.")
    reviewed = {(item.section, item.line): item for item in review_note(_note(), snapshot)}

    subjective = reviewed[("subjective", "Headache for three days")]
    assert subjective.confirmed is True
    assert subjective.snippet == "I have had a headache for three days"

    objective = reviewed[("objective", "Afebrile")]
    assert objective.confirmed is False
    assert objective.snippet.startswith("Afebrile")
    assert objective.meta == "[0, 8]"

    assessment = reviewed[("assessment", "Tension headache")]
    assert assessment.record is None
    assert assessment.snippet == ""

    plan = reviewed[("plan", "Ibuprofen as needed")]
    assert plan.record is not None
    assert plan.confirmed is False
