from datetime import datetime
from ..extensions import db
from .fields import iso, money
from .status import DocumentKind


class Payment(db.Model):
    __tablename__ = "payment"
    __table_args__ = (
        # One payment per approved bill or accepted receipt
        db.UniqueConstraint("source_type", "source_id", name="uq_payment_source"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    source_type = db.Column(db.Enum(DocumentKind, name="document_kind"), nullable=False)
    source_id = db.Column(db.Integer, nullable=False)
    bill_id = db.Column(db.Integer, db.ForeignKey("bill.id"), index=True)
    receipt_id = db.Column(db.Integer, db.ForeignKey("receipt.id"), index=True)
    service_provider_id = db.Column(
        db.Integer, db.ForeignKey("service_provider.id"), nullable=False
    )
    payment_method_id = db.Column(
        db.Integer, db.ForeignKey("payment_method.id"), nullable=False
    )
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    invoice_date = db.Column(db.Date, nullable=False)
    payment_date = db.Column(db.Date, nullable=False, index=True)
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "source_type": self.source_type.value,
            "source_id": self.source_id,
            "bill_id": self.bill_id,
            "receipt_id": self.receipt_id,
            "service_provider_id": self.service_provider_id,
            "payment_method_id": self.payment_method_id,
            "amount": money(self.amount),
            "currency": self.currency,
            "invoice_date": iso(self.invoice_date),
            "payment_date": iso(self.payment_date),
            "comment": self.comment,
        }
