from app.agents.normalizer import (
    TIER_FIELD_ALIASES,
    coerce_int,
    coerce_number,
    coerce_text,
    pick,
    split_link,
)


def test_pick_prefers_capitalised_label():
    assert pick({"Minimum": 10, "min": 20}, TIER_FIELD_ALIASES["min"]) == 10


def test_pick_skips_missing_and_blank_values():
    assert pick({"Minimum": None, "min": 20}, TIER_FIELD_ALIASES["min"]) == 20
    assert pick({"Source": "  ", "source": "Kayak"}, TIER_FIELD_ALIASES["source"]) == "Kayak"
    assert pick({}, TIER_FIELD_ALIASES["source"]) is None


def test_pick_keeps_zero_values():
    assert pick({"Minimum": None, "min": 0}, TIER_FIELD_ALIASES["min"]) == 0


def test_pick_tolerates_unexpected_casing():
    assert pick({"MINIMUM": 15}, TIER_FIELD_ALIASES["min"]) == 15
    assert pick({"examples": ["a"]}, TIER_FIELD_ALIASES["references"]) == ["a"]


def test_coerce_number_handles_llm_formats():
    assert coerce_number(300, 0.0) == 300.0
    assert coerce_number("$1,200", 0.0) == 1200.0
    assert coerce_number("12.5 USD", 0.0) == 12.5
    assert coerce_number("about", 0.7) == 0.7
    assert coerce_number(True, 0.0) == 0.0
    assert coerce_number(float("nan"), 0.7) == 0.7
    assert coerce_number([1, 2], 0.0) == 0.0
    assert coerce_number(None, 0.7) == 0.7


def test_coerce_int_truncates():
    assert coerce_int("2 stops", 0) == 2
    assert coerce_int(1.9, 0) == 1
    assert coerce_int(None, 0) == 0


def test_coerce_text():
    assert coerce_text(" Delta ") == "Delta"
    assert coerce_text(7.5) == "7.5"
    assert coerce_text("", "fallback") == "fallback"
    assert coerce_text({"nested": True}) is None


def test_split_link_removes_first_url():
    assert split_link("Delta $300 https://delta.com") == ("Delta $300", "https://delta.com")
    assert split_link("Book at https://a.com today") == ("Book at today", "https://a.com")
    assert split_link("a https://one.com b https://two.com") == ("a b https://two.com", "https://one.com")


def test_split_link_without_url():
    assert split_link("  Hostel dorm bed ") == ("Hostel dorm bed", None)
    assert split_link("https://only.example") == ("", "https://only.example")
