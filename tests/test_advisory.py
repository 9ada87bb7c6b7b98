from __future__ import annotations

from fundi.advisory import AdvisoryLevel, advisory_level, detect_content_categories, get_content_advisory


def test_plain_text_has_no_advisory():
    assert detect_content_categories("What is the weather like?") == [("general", 1.0)]
    assert get_content_advisory("What is the weather like?") is None


def test_minor_gets_stricter_level_than_adult():
    adult = get_content_advisory("Tell me about alcohol")
    minor = get_content_advisory("Tell me about alcohol", is_minor=True)

    assert adult.category == minor.category == "substance_use"
    assert adult.level == "caution"
    assert minor.level == "restrict"
    assert adult.title != minor.title


def test_levels_table():
    assert advisory_level("financial_risk", is_minor=False) is AdvisoryLevel.INFORMATIVE
    assert advisory_level("unknown", is_minor=True) is AdvisoryLevel.NONE


def test_most_confident_category_first():
    detected = detect_content_categories("crypto gambling at a casino after a big bet")
    assert detected[0][0] == "financial_risk"
