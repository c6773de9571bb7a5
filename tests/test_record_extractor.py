import pytest
from pydantic import ValidationError

from portfolio_sync.schemas.company import CompanyRecord
from portfolio_sync.services.record_extractor import extract_row, extract_rows, extract_sheet
from portfolio_sync.services.schema_discovery import resolve_columns

HEADER = [
    "No.",
    "Portfolio company",
    "Sector",
    "Total invested ($M)",
    "Valuation at investment ($M)",
    "Valuation (30.6.2025)",
    "Latest valuation ($M)",
    "Ownership %",
    "Net ROI",
    "Status",
    "Founders",
]


def _rows():
    return [
        HEADER,
        ["1", "5.6. Acme Corp (FKA Old Name)", "FinTech", "1.5", "10", "14", "15,000,000", "0.15", "1.25x", "Active", "Lan Tran; Minh Vo"],
        ["2", "Beta", "Health", "$2", "8", "", "12.5", "42", "2", "partially exited", ""],
        ["", "", "", "", "", "", "", "", "", "", ""],
        ["3", "0", "x"],
        ["4", "Gamma"],
    ]


def test_extract_sheet_normalizes_and_scales():
    extraction = extract_sheet(_rows())
    acme, beta, gamma = extraction.records

    assert acme.name == "Acme Corp (FKA Old Name)"
    assert acme.display_name == "Acme Corp"
    assert acme.investment_amount == 1_500_000
    assert acme.entry_valuation == 10_000_000
    # Already in full units: the ceiling guard prevents double scaling
    assert acme.current_valuation == 15_000_000
    assert acme.ownership_percent == 15.0
    assert acme.moic == 1.25
    assert acme.status == "Active"
    assert acme.founders == ["Lan Tran", "Minh Vo"]

    assert beta.investment_amount == 2_000_000
    assert beta.current_valuation == 12_500_000
    assert beta.ownership_percent == 42.0
    assert beta.moic == 2.0
    assert beta.status == "Partially Exited"
    assert beta.founders is None

    assert gamma.name == "Gamma"


def test_plain_valuation_header_in_millions_is_scaled():
    extraction = extract_sheet([["No.", "Company name", "Valuation ($M)"], ["1", "Acme", "12.5"]])
    assert extraction.records[0].current_valuation == 12_500_000


def test_invalid_rows_are_skipped_silently():
    extraction = extract_sheet(_rows())
    assert [r.name for r in extraction.records] == ["Acme Corp (FKA Old Name)", "Beta", "Gamma"]
    assert extraction.skipped_rows == [4, 5]
    assert extraction.total_rows == 5


def test_dated_valuations_become_extra_attributes():
    acme, beta, _ = extract_sheet(_rows()).records
    assert acme.extra_valuations == {"valuation_30_6_2025": 14.0}
    assert beta.extra_valuations == {"valuation_30_6_2025": 0.0}
    # The canonical field is untouched by the dated column
    assert acme.current_valuation == 15_000_000


def test_unresolved_fields_are_absent_not_zero():
    cm = resolve_columns(["#", "Company name", "Sector"])
    record = extract_row(["1", "Acme", "FinTech"], cm)
    assert record.sector == "FinTech"
    assert record.current_valuation is None
    assert record.moic is None
    assert "current_valuation" not in record.to_patch()


def test_resolved_but_blank_numeric_cell_is_zero():
    cm = resolve_columns(["#", "Company name", "MOIC"])
    record = extract_row(["1", "Acme", ""], cm)
    assert record.moic == 0.0


def test_row_order_is_preserved():
    cm = resolve_columns(["#", "Company name"])
    rows = [["1", "Zeta"], ["2", "Alpha"], ["3", "Mu"]]
    assert [r.name for r in extract_rows(rows, cm)] == ["Zeta", "Alpha", "Mu"]


def test_short_rows_do_not_index_out_of_range():
    cm = resolve_columns(HEADER)
    record = extract_row(["1", "Acme"], cm)
    assert record.name == "Acme"
    assert record.current_valuation == 0.0


def test_scale_hints_can_be_overridden():
    cm = resolve_columns(["#", "Company name", "Latest valuation"])
    record = extract_row(["1", "Acme", "12.5"], cm, scale_hints={"current_valuation": True})
    assert record.current_valuation == 12_500_000


def test_empty_sheet():
    extraction = extract_sheet([])
    assert extraction.records == []
    assert extraction.total_rows == 0


def test_record_rejects_raw_strings_in_financial_fields():
    with pytest.raises(ValidationError):
        CompanyRecord(name="Acme", current_valuation="$12M")


def test_record_drops_negative_and_non_finite_financials():
    record = CompanyRecord(name="Acme", net_value=-5.0, moic=float("inf"), investment_amount=3)
    assert record.net_value is None
    assert record.moic is None
    assert record.investment_amount == 3.0
