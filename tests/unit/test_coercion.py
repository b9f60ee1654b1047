"""Unit tests for value coercion helpers."""
import math

import pytest

from recoledger.coercion import is_present, normalize_status, parse_date, parse_number, parse_quantity, to_text


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, False),
        ("", False),
        ("   ", False),
        (math.nan, False),
        (0, True),
        (0.0, True),
        ("0", True),
        ("x", True),
    ],
)
def test_is_present(value, expected):
    assert is_present(value) is expected


def test_parse_number_strips_currency_and_separators():
    assert parse_number("₹1,299.00") == 1299.0
    assert parse_number("-45.5") == -45.5
    assert parse_number("950.00") == 950.0
    assert parse_number(12) == 12.0


def test_parse_number_defaults_to_zero():
    assert parse_number("") == 0.0
    assert parse_number("n/a") == 0.0
    assert parse_number("1.2.3") == 0.0
    assert parse_number(math.nan) == 0.0


def test_parse_quantity_is_a_non_negative_integer():
    assert parse_quantity("3") == 3
    assert parse_quantity("2.9") == 2
    assert parse_quantity("-4") == 0
    assert parse_quantity("0") == 0


def test_parse_date_normalizes_or_keeps_text():
    assert parse_date("2024-03-05 10:15:00") == "2024-03-05"
    assert parse_date("not a date") == "not a date"
    assert parse_date("") == ""


def test_status_and_text():
    assert normalize_status("  Delivered ") == "delivered"
    assert to_text(5.0) == "5"
    assert to_text(None) == ""


def test_non_finite_numbers_are_parse_failures():
    huge = "9" * 400
    assert parse_number(huge) == 0.0
    assert parse_number(math.inf) == 0.0
    assert parse_number(10 ** 400) == 0.0
    assert parse_quantity(huge) == 0
