from careloop.privacy.detector import detect, has_phi, total_occurrences


def test_detect_single_email_reports_one_finding() -> None:
    findings = detect("Contact test@example.com now")
    assert len(findings) == 1
    assert findings[0].category == "email"
    assert findings[0].count == 1
    assert findings[0].examples == ("test@example.com",)


def test_detect_clean_text_returns_empty() -> None:
    assert detect("Patient reports mild headache since yesterday.") == []
    assert detect("") == []


def test_detect_keeps_fixed_category_order() -> None:
    text = "Born 1990-05-12, lives at 12 Baker street, mail jane.doe@clinic.org"
    categories = [item.category for item in detect(text)]
    assert categories.index("email") < categories.index("address") < categories.index("dob")


def test_detect_is_stable_across_calls() -> None:
    text = "Call +36 30 123 4567 or write to a@b.io"
    assert detect(text) == detect(text)


def test_detect_examples_are_distinct_and_capped() -> None:
    text = " ".join(["a@b.io", "a@b.io", "c@d.io", "e@f.io", "g@h.io"])
    finding = detect(text)[0]
    assert finding.count == 5
    assert finding.examples == ("a@b.io", "c@d.io", "e@f.io")


def test_detect_counts_overlapping_categories_independently() -> None:
    findings = {item.category: item for item in detect("MRN 123456789")}
    assert findings["id_like"].count == 1
    assert findings["phone"].count == 1
    assert total_occurrences(list(findings.values())) == 2


def test_detect_address_matches_street_suffix_case_insensitively() -> None:
    findings = detect("She moved to 221 Baker STREET last year")
    assert [item.category for item in findings] == ["address"]
    assert findings[0].examples == ("221 Baker STREET",)


def test_has_phi_reflects_findings() -> None:
    assert has_phi(detect("write to x@y.com")) is True
    assert has_phi(detect("no identifiers here")) is False


def test_detect_phone_separated_by_non_breaking_spaces() -> None:
    findings = detect("Call 555\xa0123\xa04567 tomorrow")
    assert [item.category for item in findings] == ["phone"]
    assert findings[0].count == 1
    assert findings[0].examples == ("555\xa0123\xa04567",)


def test_detect_ignores_non_latin_digits() -> None:
    assert detect("Call ٥٥٥ ١٢٣ ٤٥٦٧ tomorrow") == []


def test_detect_address_matches_uppercase_accented_suffixes() -> None:
    findings = detect("Lakik a Petőfi ÚT 12 alatt")
    assert [item.category for item in findings] == ["address"]
    assert findings[0].examples == ("Petőfi ÚT",)

    ring = detect("Andrássy KÖRÚT mellett")
    assert [item.category for item in ring] == ["address"]
    assert ring[0].examples == ("Andrássy KÖRÚT",)
