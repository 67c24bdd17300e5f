"""
Turns raw OCR text into the handful of fields an invoice or receipt needs:
who issued it, when, how much and in which currency.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

# A robust regex for monetary values that handles thousands separators
MONEY_PATTERN = r"\b\d{1,3}(?:[.,]\d{3})*[.,]\d{2}\b|\b\d+[.,]\d{2}\b"
DATE_PATTERN = (
    r"\b(\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}"
    r"|\d{1,2}\s+[A-Za-z]{3,}\.?\s+\d{2,4}"
    r"|[A-Za-z]{3,}\.?\s+\d{1,2},?\s+\d{4})\b"
)
TOTAL_PATTERN = r"(total|amount\s*due|balance\s*due|grand\s*total|to\s*pay)"
SKIP_PROVIDER = r"(tax|vat|invoice|receipt|till|cash|total|amount due|date|page)"

CURRENCY_SYMBOLS = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₽": "RUB",
    "₹": "INR",
}
CURRENCY_CODES = ("USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "ZAR", "RUB", "INR", "SEK", "NOK", "PLN")


def parse_amount(s: Any) -> Optional[Decimal]:
    """
    Converts a string to a Decimal, handling common European and
    American-style number formats with thousands separators.
    """
    if s is None or s == "":
        return None
    s = str(s).strip().replace(" ", "").replace("\u00a0", "")
    last_dot = s.rfind(".")
    last_comma = s.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        # Whichever separator comes last is the decimal one (1.234,56 / 1,234.56)
        if last_comma > last_dot:
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif last_dot >= 0 or last_comma >= 0:
        sep = "." if last_dot >= 0 else ","
        head, _, tail = s.partition(sep)
        # 1,000 and 1.500.000 group thousands; 12,5 and 0.500 are decimals
        grouped = s.count(sep) > 1 or (len(tail) == 3 and head.lstrip("+-") not in ("", "0"))
        s = s.replace(sep, "") if grouped else s.replace(sep, ".")
    try:
        value = Decimal(s)
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value.quantize(Decimal("0.01"))


def _clean(s: str) -> str:
    s = re.sub(r"[^A-Za-z0-9&\.\-\'\s]", " ", s)
    return re.sub(r"\s{2,}", " ", s).strip(" -'.")


def _letter_ratio(s: str) -> float:
    letters = sum(ch.isalpha() for ch in s)
    return letters / max(1, len(s))


def _find_provider(lines):
    for ln in lines[:10]:
        if re.search(SKIP_PROVIDER, ln, re.I):
            continue
        cand = _clean(ln)
        if len(cand) >= 3 and _letter_ratio(cand) >= 0.40:
            return cand
    return None


def _find_date(joined):
    for match in re.findall(DATE_PATTERN, joined):
        try:
            # ISO dates are unambiguous; anything else is read day first
            dayfirst = not re.match(r"\d{4}-", match)
            return date_parser.parse(match, dayfirst=dayfirst).date()
        except (date_parser.ParserError, OverflowError, TypeError, ValueError):
            continue
    return None


def _find_amount(lines, joined):
    # Prefer explicit total lines, reading from the bottom up
    for ln in reversed(lines):
        if re.search(TOTAL_PATTERN, ln, re.I) and not re.search(r"sub\s*total", ln, re.I):
            found = re.findall(MONEY_PATTERN, ln)
            if found:
                return parse_amount(found[-1])
    values = [parse_amount(v) for v in re.findall(MONEY_PATTERN, joined)]
    values = [v for v in values if v is not None]
    # Fallback to the largest monetary value in the text
    return max(values) if values else None


def _find_currency(joined):
    upper = joined.upper()
    for code in CURRENCY_CODES:
        if re.search(rf"\b{code}\b", upper):
            return code
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in joined:
            return code
    return None


def parse_fields(raw_text: str) -> Dict[str, Any]:
    text = (raw_text or "").replace("\x0c", " ")
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    joined = "\n".join(lines)
    return {
        "provider": _find_provider(lines),
        "date": _find_date(joined),
        "amount": _find_amount(lines, joined),
        "currency": _find_currency(joined),
    }
