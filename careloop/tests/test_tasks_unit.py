from careloop.note.structured import as_lines
from careloop.note.tasks import to_tasks


def test_to_tasks_strips_ordinal_prefixes() -> None:
    assert to_tasks(["1. Take aspirin", "2. Rest"]) == ["Take aspirin", "Rest"]


def test_to_tasks_keeps_decimal_doses() -> None:
    assert to_tasks(["1. 2.5 mg amlodipine daily"]) == ["2.5 mg amlodipine daily"]
    assert to_tasks(["0.5 tablet at night"]) == ["0.5 tablet at night"]
    assert to_tasks(["1.Take aspirin"]) == ["Take aspirin"]


def test_to_tasks_splits_bulleted_string() -> None:
    plan = "• Take aspirin daily\n• Return in two weeks\n"
    assert to_tasks(plan) == ["Take aspirin daily", "Return in two weeks"]


def test_to_tasks_drops_short_and_empty_lines() -> None:
    assert to_tasks(["ok", "  ", "3. ", "Walk daily"]) == ["Walk daily"]


def test_to_tasks_caps_count() -> None:
    plan = [f"Task number {i}" for i in range(30)]
    assert len(to_tasks(plan)) == 20
    assert to_tasks(plan, max_tasks=2) == ["Task number 0", "Task number 1"]


def test_to_tasks_is_idempotent() -> None:
    plan = ["1. 2. Hydrate well", "3. Sleep eight hours", "1. 2.5 mg amlodipine daily"]
    once = to_tasks(plan)
    assert to_tasks(once) == once


def test_to_tasks_handles_missing_plan() -> None:
    assert to_tasks(None) == []
    assert to_tasks("") == []


def test_as_lines_keeps_unsplittable_text_whole() -> None:
    assert as_lines("Rest at home") == ["Rest at home"]
    assert as_lines(["  a  ", "", "b"]) == ["a", "b"]
