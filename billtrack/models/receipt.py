from datetime import datetime
from ..extensions import db
from .fields import OcrFieldsMixin, iso, money
from .status import ItemStatus


class Receipt(OcrFieldsMixin, db.Model):
    __tablename__ = "receipt"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bill.id"), nullable=True, index=True)
    source_file_id = db.Column(
        db.Integer, db.ForeignKey("incoming_file.id"), unique=True, nullable=True
    )

    # File metadata, empty for receipts entered by hand
    filename = db.Column(db.String(255))
    file_path = db.Column(db.String(512))
    checksum = db.Column(db.String(64))
    upload_date = db.Column(db.DateTime, index=True)

    status = db.Column(
        db.Enum(ItemStatus, name="item_status"),
        default=ItemStatus.NEW,
        nullable=False,
        index=True,
    )
    merchant = db.Column(db.String(255))
    amount = db.Column(db.Numeric(12, 2))
    currency = db.Column(db.String(3))
    payment_date = db.Column(db.Date)
    description = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    accepted_at = db.Column(db.DateTime)

    @property
    def has_file(self):
        return self.filename is not None and self.file_path is not None

    def to_dict(self):
        data = {
            "id": self.id,
            "bill_id": self.bill_id,
            "source_file_id": self.source_file_id,
            "filename": self.filename,
            "file_path": self.file_path,
            "upload_date": iso(self.upload_date),
            "status": self.status.value,
            "merchant": self.merchant,
            "amount": money(self.amount),
            "currency": self.currency,
            "payment_date": iso(self.payment_date),
            "description": self.description,
            "accepted_at": iso(self.accepted_at),
        }
        data.update(self.ocr_dict())
        return data
