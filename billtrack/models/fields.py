"""Shared column groups and JSON formatting for document models."""
from ..extensions import db


def iso(value):
    return value.isoformat() if value is not None else None


def money(value):
    return str(value) if value is not None else None


class OcrFieldsMixin:
    """OCR output copied along when a document changes representation."""

    ocr_raw_json = db.Column(db.Text)
    extracted_amount = db.Column(db.Numeric(12, 2))
    extracted_date = db.Column(db.Date)
    extracted_provider = db.Column(db.String(255))
    extracted_currency = db.Column(db.String(3))
    ocr_processed_at = db.Column(db.DateTime)

    OCR_FIELDS = (
        "ocr_raw_json",
        "extracted_amount",
        "extracted_date",
        "extracted_provider",
        "extracted_currency",
        "ocr_processed_at",
    )

    def ocr_fields(self):
        return {name: getattr(self, name) for name in self.OCR_FIELDS}

    def ocr_dict(self):
        return {
            "extracted_amount": money(self.extracted_amount),
            "extracted_date": iso(self.extracted_date),
            "extracted_provider": self.extracted_provider,
            "extracted_currency": self.extracted_currency,
            "ocr_processed_at": iso(self.ocr_processed_at),
        }
