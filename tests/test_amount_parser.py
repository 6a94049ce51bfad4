"""Tests for amount parsing."""

import pytest
from decimal import Decimal

from finledger.utils.amount_parser import parse_amount


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", Decimal("123.45")),
        ("R$ 123,45", Decimal("123.45")),
        ("$1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("50", Decimal("50.00")),
        ("10.499", Decimal("10.50")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "abc", "-50.00", "0", "0.001", "NaN"])
def test_parse_amount_rejects(text):
    with pytest.raises(ValueError):
        parse_amount(text)
