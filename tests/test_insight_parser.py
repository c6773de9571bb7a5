import pytest

from portfolio_sync.services.insight_parser import (
    DecodeFailure,
    decode_structured,
    fallback_insights,
    parse_insights,
    strip_code_fences,
)

CLEAN = '{"description": "Payments for SMEs.", "sector": "FinTech", "latestUpdates": ["Closed Series A"]}'


def test_clean_json_decodes():
    result = decode_structured(CLEAN)
    assert result.ok
    assert result.value["sector"] == "FinTech"


def test_fenced_json_decodes():
    result = decode_structured(f"```json\n{CLEAN}\n```")
    assert result.ok
    assert result.value["description"] == "Payments for SMEs."


def test_prose_wrapped_json_decodes():
    result = decode_structured(f"Here is the analysis you asked for:\n{CLEAN}\nLet me know if you need more.")
    assert result.ok
    assert result.value["latestUpdates"] == ["Closed Series A"]


@pytest.mark.parametrize("text, failure", [
    (None, DecodeFailure.EMPTY),
    ("", DecodeFailure.EMPTY),
    ("```json\n```", DecodeFailure.EMPTY),
    ("I could not find anything useful.", DecodeFailure.MALFORMED),
    ('{"description": "unterminated', DecodeFailure.MALFORMED),
    ('["a", "b"]', DecodeFailure.NOT_AN_OBJECT),
    ("42", DecodeFailure.NOT_AN_OBJECT),
])
def test_decode_failures_are_reported_not_raised(text, failure):
    result = decode_structured(text)
    assert not result.ok
    assert result.failure is failure


def test_strip_code_fences():
    assert strip_code_fences("```\n{}\n```") == "{}"
    assert strip_code_fences("plain") == "plain"


def test_parse_insights_sanitizes_lists_and_metrics():
    text = """{
        "description": "  Payments for SMEs.  ",
        "latestUpdates": ["a", "b", "c", "d", "e", "f", "g"],
        "highlights": "Profitable since 2024",
        "founders": ["Lan Tran", null, ""],
        "keyMetrics": {"revenue": "$1M ARR", "users": 50000, "empty": null},
        "stage": null
    }"""
    insights, decoded = parse_insights(text)

    assert decoded.ok
    assert insights.description == "Payments for SMEs."
    assert insights.latest_updates == ["a", "b", "c", "d", "e"]
    assert insights.highlights == ["Profitable since 2024"]
    assert insights.founders == ["Lan Tran"]
    assert insights.key_metrics == {"revenue": "$1M ARR", "users": "50000"}
    assert insights.stage is None


def test_parse_insights_accepts_snake_case_keys():
    insights, _ = parse_insights('{"latest_updates": ["x"], "key_metrics": {"arr": "2M"}}')
    assert insights.latest_updates == ["x"]
    assert insights.key_metrics == {"arr": "2M"}


def test_parse_insights_failure_returns_none():
    insights, decoded = parse_insights("no json here")
    assert insights is None
    assert decoded.failure is DecodeFailure.MALFORMED


def test_insights_patch_maps_onto_record_fields():
    insights, _ = parse_insights(CLEAN)
    patch = insights.to_patch()
    assert patch["ai_description"] == "Payments for SMEs."
    assert patch["description"] == "Payments for SMEs."
    assert patch["ai_latest_updates"] == ["Closed Series A"]
    assert patch["sector"] == "FinTech"
    assert "ai_highlights" not in patch


def test_fallback_lists_first_five_names():
    names = [f"doc {n}" for n in range(8)]
    insights = fallback_insights(8, names)
    assert insights.description == (
        "Portfolio company with 8 files in data room. Documents include: doc 0, doc 1, doc 2, doc 3, doc 4."
    )
