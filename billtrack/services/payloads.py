"""Parsing of user-supplied values shared by the services and blueprints."""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from dateutil import parser as date_parser

from ..models.status import DocumentKind
from ..ocr.parser import parse_amount


class InvalidInput(ValueError):
    pass


def parse_number(v: Any) -> Optional[Decimal]:
    """Empty means None; anything else must be a valid amount."""
    if v is None or v == "":
        return None
    if isinstance(v, Decimal):
        return v.quantize(Decimal("0.01"))
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        value = Decimal(str(v))
        if not value.is_finite():
            raise InvalidInput(f"Invalid amount: {v!r}")
        return value.quantize(Decimal("0.01"))
    amount = parse_amount(v)
    if amount is None:
        raise InvalidInput(f"Invalid amount: {v!r}")
    return amount


def parse_date(v: Any) -> Optional[date]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    try:
        return date_parser.isoparse(str(v)).date()
    except ValueError:
        pass
    try:
        return date_parser.parse(str(v), dayfirst=True).date()
    except (date_parser.ParserError, OverflowError, TypeError, ValueError):
        raise InvalidInput(f"Invalid date: {v!r}")


def parse_int(v: Any) -> Optional[int]:
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid id: {v!r}")


def parse_currency(v: Any) -> Optional[str]:
    if v is None or v == "":
        return None
    code = str(v).strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise InvalidInput(f"Invalid currency: {v!r}")
    return code


def parse_text(v: Any) -> Optional[str]:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


@dataclass
class FieldEdits:
    """Manual edits to the amount/date/provider/currency of a document."""

    amount: Optional[Decimal] = None
    date: Optional[date] = None
    provider: Optional[str] = None
    currency: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FieldEdits":
        return cls(
            amount=parse_number(data.get("amount")),
            date=parse_date(data.get("date")),
            provider=parse_text(data.get("provider")),
            currency=parse_currency(data.get("currency")),
        )


@dataclass
class PaymentPayload:
    """
    Optional payment details sent along with an approval. Missing fields are
    allowed here; `is_complete` decides whether a payment gets created.
    """

    service_provider_id: Optional[int] = None
    payment_method_id: Optional[int] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    invoice_date: Optional[date] = None
    payment_date: Optional[date] = None
    comment: Optional[str] = None

    REQUIRED = ("service_provider_id", "payment_method_id", "amount", "invoice_date", "payment_date")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["PaymentPayload"]:
        if not data:
            return None
        return cls(
            service_provider_id=parse_int(data.get("service_provider_id")),
            payment_method_id=parse_int(data.get("payment_method_id")),
            amount=parse_number(data.get("amount")),
            currency=parse_currency(data.get("currency")),
            invoice_date=parse_date(data.get("invoice_date")),
            payment_date=parse_date(data.get("payment_date")),
            comment=parse_text(data.get("comment")),
        )

    @property
    def is_complete(self) -> bool:
        return all(getattr(self, name) is not None for name in self.REQUIRED)


def parse_kind(v: Any) -> DocumentKind:
    if isinstance(v, DocumentKind):
        return v
    try:
        return DocumentKind(str(v).strip().upper())
    except ValueError:
        raise InvalidInput(f"Unknown document kind: {v!r}")


def parse_status(enum_cls, v: Any):
    try:
        return enum_cls(str(v).strip().upper())
    except ValueError:
        raise InvalidInput(f"Unknown status: {v!r}")
