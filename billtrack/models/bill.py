from datetime import datetime
from ..extensions import db
from .fields import OcrFieldsMixin, iso, money
from .status import ItemStatus


class Bill(OcrFieldsMixin, db.Model):
    __tablename__ = "bill"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    source_file_id = db.Column(
        db.Integer, db.ForeignKey("incoming_file.id"), unique=True, nullable=True
    )
    filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(512), nullable=False)
    checksum = db.Column(db.String(64))
    upload_date = db.Column(db.DateTime, nullable=False, index=True)
    status = db.Column(
        db.Enum(ItemStatus, name="item_status"),
        default=ItemStatus.NEW,
        nullable=False,
        index=True,
    )

    # User edits overlaying the OCR values until the bill is approved
    draft_amount = db.Column(db.Numeric(12, 2))
    draft_date = db.Column(db.Date)
    draft_provider = db.Column(db.String(255))
    draft_currency = db.Column(db.String(3))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    approved_at = db.Column(db.DateTime)

    receipts = db.relationship("Receipt", backref="bill", lazy="dynamic")

    @property
    def effective_amount(self):
        return self.draft_amount if self.draft_amount is not None else self.extracted_amount

    @property
    def effective_date(self):
        return self.draft_date if self.draft_date is not None else self.extracted_date

    @property
    def effective_provider(self):
        return self.draft_provider or self.extracted_provider

    @property
    def effective_currency(self):
        return self.draft_currency or self.extracted_currency

    def to_dict(self):
        data = {
            "id": self.id,
            "source_file_id": self.source_file_id,
            "filename": self.filename,
            "file_path": self.file_path,
            "upload_date": iso(self.upload_date),
            "status": self.status.value,
            "draft_amount": money(self.draft_amount),
            "draft_date": iso(self.draft_date),
            "draft_provider": self.draft_provider,
            "draft_currency": self.draft_currency,
            "amount": money(self.effective_amount),
            "date": iso(self.effective_date),
            "provider": self.effective_provider,
            "currency": self.effective_currency,
            "approved_at": iso(self.approved_at),
        }
        data.update(self.ocr_dict())
        return data
