import pytest

from portfolio_sync.services.value_normalizer import (
    apply_scale,
    clean_company_name,
    is_millions_header,
    normalize_name_key,
    normalize_status,
    to_multiplier,
    to_number,
    to_percentage,
)


@pytest.mark.parametrize("raw, expected", [
    ("$1,234.50", 1234.5),
    ("15%", 15.0),
    ("", 0.0),
    ("garbage", 0.0),
    (None, 0.0),
    ("  2 500 000 ", 2500000.0),
    ("€3.2", 3.2),
    (7, 7.0),
    (float("nan"), 0.0),
])
def test_to_number(raw, expected):
    assert to_number(raw) == expected


def test_to_number_takes_leading_number_of_mixed_text():
    assert to_number("12.5 (est.)") == 12.5


@pytest.mark.parametrize("raw, expected", [
    ("1.00x", 1.0),
    ("2", 2.0),
    ("1.25X", 1.25),
    ("3.4 x", 3.4),
    ("n/a", 0.0),
])
def test_to_multiplier(raw, expected):
    assert to_multiplier(raw) == expected


def test_ownership_fraction_becomes_percentage():
    assert to_percentage("0.15") == 15.0
    assert to_percentage("42") == 42.0
    assert to_percentage("12.5%") == 12.5


def test_ownership_half_percent_reads_as_fraction():
    # Known ambiguity: a genuine 0.5% typed as "0.5" is indistinguishable from a fraction
    assert to_percentage("0.5") == 50.0


@pytest.mark.parametrize("header", [
    "Valuation ($M)",
    "Total invested (USD M)",
    "Net value in millions",
    "Latest valuation (M)",
    "Amount $M",
])
def test_millions_headers(header):
    assert is_millions_header(header)


@pytest.mark.parametrize("header", ["Valuation", "Ownership %", "MOIC", "", None, "Company name"])
def test_plain_headers(header):
    assert not is_millions_header(header)


def test_scale_correction():
    assert apply_scale(to_number("12.5"), is_millions_header("Valuation ($M)")) == 12_500_000
    assert apply_scale(to_number("15,000,000"), True) == 15_000_000
    assert apply_scale(12.5, False) == 12.5
    assert apply_scale(0.0, True) == 0.0


def test_scaled_values_are_integral():
    assert apply_scale(1.2345678, True) == 1_234_568.0


def test_clean_company_name():
    assert clean_company_name("5.6. Acme Corp (FKA Old Name)") == ("Acme Corp (FKA Old Name)", "Acme Corp")
    assert clean_company_name("1. Beta") == ("Beta", "Beta")
    assert clean_company_name("Gamma Labs") == ("Gamma Labs", "Gamma Labs")


def test_clean_company_name_keeps_purely_numeric_names():
    assert clean_company_name("42") == ("42", "42")


def test_name_key_ignores_case_and_spacing():
    assert normalize_name_key("  Acme   Corp ") == "acme corp"
    assert normalize_name_key("ACME corp") == normalize_name_key("Acme Corp")


@pytest.mark.parametrize("raw, expected", [
    ("Active", "Active"),
    ("partially exited", "Partially Exited"),
    ("Exited", "Exited"),
    ("acquired", "Exited"),
    ("Written off", "Written Off"),
    ("Bridge round", "Bridge round"),
    ("", None),
    (None, None),
])
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected
