from datetime import date
from decimal import Decimal

import pytest

from billtrack.ocr.parser import parse_amount, parse_fields
from billtrack.services.payloads import InvalidInput, parse_number

INVOICE = """
Acme Corporation
123 Main Street
Invoice No: INV-2024-001
Date: 2024-01-01
Subtotal: 100.00
Tax: 20.50
Total: USD 120.50
"""

EURO_RECEIPT = """
Cafe Central
Kassenbon
12.03.2024 14:02
Espresso 2,80
Kuchen 1.231,76
Total EUR 1.234,56
"""

UK_BILL = """
Northern Power & Light
Statement date 5 March 2024
Amount due £45.00
"""


def test_parse_invoice_text():
    data = parse_fields(INVOICE)

    assert data["provider"] == "Acme Corporation"
    assert data["date"] == date(2024, 1, 1)
    assert data["amount"] == Decimal("120.50")
    assert data["currency"] == "USD"


def test_parse_european_receipt():
    """Decimal commas and day-first dates."""
    data = parse_fields(EURO_RECEIPT)

    assert data["provider"] == "Cafe Central"
    assert data["date"] == date(2024, 3, 12)
    assert data["amount"] == Decimal("1234.56")
    assert data["currency"] == "EUR"


def test_parse_currency_symbol_and_written_date():
    data = parse_fields(UK_BILL)

    assert data["provider"] == "Northern Power & Light"
    assert data["date"] == date(2024, 3, 5)
    assert data["amount"] == Decimal("45.00")
    assert data["currency"] == "GBP"


def test_largest_value_when_no_total_line():
    data = parse_fields("Corner Shop\nMilk 1.20\nBread 2.35\n")

    assert data["amount"] == Decimal("2.35")
    assert data["date"] is None
    assert data["currency"] is None


def test_parse_empty_text():
    assert parse_fields("") == {"provider": None, "date": None, "amount": None, "currency": None}


def test_parse_amount_formats():
    assert parse_amount("1,234.56") == Decimal("1234.56")
    assert parse_amount("1.234,56") == Decimal("1234.56")
    assert parse_amount("42") == Decimal("42.00")
    assert parse_amount("abc") is None
    assert parse_amount("") is None
    assert parse_amount("12,5") == Decimal("12.50")
    assert parse_amount("0.500") == Decimal("0.50")


def test_lone_separator_before_three_digits_groups_thousands():
    assert parse_amount("1,000") == Decimal("1000.00")
    assert parse_amount("1.500") == Decimal("1500.00")
    assert parse_amount("1.500.000") == Decimal("1500000.00")
    assert parse_amount("2,345,678") == Decimal("2345678.00")


def test_parse_number_keeps_thousands():
    assert parse_number("1,000") == Decimal("1000.00")
    assert parse_number(1.125) == Decimal("1.12")
    assert parse_number(15) == Decimal("15.00")
    with pytest.raises(InvalidInput):
        parse_number(float("inf"))
