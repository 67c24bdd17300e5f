from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..models import Payment, ServiceProvider, PaymentMethod, DocumentKind
from .base import BaseService
from .results import Outcome, Failure


class PaymentService(BaseService):
    """
    Payments are only ever created as a side effect of approving a bill or
    accepting a receipt, each in its own transaction after the approval has
    been committed.
    """

    def __init__(self, session, default_currency="USD") -> None:
        super().__init__(session)
        self.default_currency = default_currency

    def create_for_bill(self, bill, payload) -> Outcome:
        return self._create(
            bill.user_id, DocumentKind.BILL, bill.id, payload, bill_id=bill.id
        )

    def create_for_receipt(self, receipt, payload) -> Outcome:
        return self._create(
            receipt.user_id,
            DocumentKind.RECEIPT,
            receipt.id,
            payload,
            bill_id=receipt.bill_id,
            receipt_id=receipt.id,
        )

    def _create(self, user_id, source_type, source_id, payload, bill_id=None, receipt_id=None):
        if payload is None or not payload.is_complete:
            return Outcome.fail(Failure.INVALID_INPUT, "Payment details are incomplete")
        if payload.amount <= 0:
            return Outcome.fail(Failure.INVALID_INPUT, "Payment amount must be positive")
        if self.session.get(ServiceProvider, payload.service_provider_id) is None:
            return Outcome.fail(Failure.INVALID_INPUT, "Unknown service provider")
        if self.session.get(PaymentMethod, payload.payment_method_id) is None:
            return Outcome.fail(Failure.INVALID_INPUT, "Unknown payment method")

        payment = Payment(
            user_id=user_id,
            source_type=source_type,
            source_id=source_id,
            bill_id=bill_id,
            receipt_id=receipt_id,
            service_provider_id=payload.service_provider_id,
            payment_method_id=payload.payment_method_id,
            amount=payload.amount,
            currency=payload.currency or self.default_currency,
            invoice_date=payload.invoice_date,
            payment_date=payload.payment_date,
            comment=payload.comment,
        )
        self.session.add(payment)
        try:
            self.commit()
        except IntegrityError:
            return Outcome.fail(Failure.INVALID_STATE, "A payment already exists for this document")
        return Outcome.success(payment)

    def find(self, payment_id, user_id) -> Outcome:
        payment = self.owned(Payment, payment_id, user_id)
        if payment is None:
            return Outcome.fail(Failure.NOT_FOUND)
        return Outcome.success(payment)

    def for_source(self, source_type, source_id, user_id):
        return (
            self.session.query(Payment)
            .filter_by(source_type=source_type, source_id=source_id, user_id=user_id)
            .one_or_none()
        )

    def statistics(self, user_id):
        rows = (
            self.session.query(Payment.currency, func.count(Payment.id), func.sum(Payment.amount))
            .filter(Payment.user_id == user_id)
            .group_by(Payment.currency)
            .all()
        )
        return {
            "count": sum(count for _, count, _ in rows),
            "totals": {currency: str(total) for currency, _, total in rows},
        }
