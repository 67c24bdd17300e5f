from typing import Any, Dict, Mapping

from ..models import Bill, Receipt, Payment, IncomingFile, ItemStatus
from .base import BaseService, utcnow
from .bills import coerce_payment, create_payment
from .payloads import InvalidInput, parse_currency, parse_date, parse_int, parse_number, parse_text
from .results import Outcome, Failure, ApprovalResult

EDITABLE_FIELDS = {
    "merchant": parse_text,
    "amount": parse_number,
    "currency": parse_currency,
    "payment_date": parse_date,
    "description": parse_text,
}


def receipt_values(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Parse the user-editable receipt fields present in `fields`."""
    return {name: parse(fields[name]) for name, parse in EDITABLE_FIELDS.items() if name in fields}


class ReceiptService(BaseService):
    def __init__(self, session, payments, storage=None) -> None:
        super().__init__(session)
        self.payments = payments
        self.storage = storage

    def find(self, receipt_id, user_id) -> Outcome:
        receipt = self.owned(Receipt, receipt_id, user_id)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        return Outcome.success(receipt)

    def _open_bill(self, bill_id, user_id):
        """Returns (bill, failure) for a bill a receipt may be attached to."""
        bill = self.owned(Bill, bill_id, user_id)
        if bill is None:
            return None, Outcome.fail(Failure.NOT_FOUND, "Bill not found")
        if bill.status == ItemStatus.REJECTED:
            return None, Outcome.fail(Failure.INVALID_STATE, "Cannot attach a receipt to a rejected bill")
        return bill, None

    def create(self, user_id, fields=None, bill_id=None) -> Outcome:
        """Create a receipt by hand, without an uploaded file behind it."""
        try:
            values = receipt_values(fields or {})
            bill_id = parse_int(bill_id)
        except InvalidInput as e:
            return Outcome.fail(Failure.INVALID_INPUT, str(e))
        if bill_id is not None:
            _, failure = self._open_bill(bill_id, user_id)
            if failure is not None:
                return failure
        receipt = Receipt(user_id=user_id, bill_id=bill_id, status=ItemStatus.NEW, **values)
        self.session.add(receipt)
        self.commit()
        return Outcome.success(receipt)

    def update(self, receipt_id, user_id, fields) -> Outcome:
        try:
            values = receipt_values(fields or {})
        except InvalidInput as e:
            return Outcome.fail(Failure.INVALID_INPUT, str(e))
        receipt = self.owned(Receipt, receipt_id, user_id, lock=True)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if receipt.status != ItemStatus.NEW:
            return Outcome.fail(Failure.INVALID_STATE, f"A {receipt.status.value} receipt cannot be edited")
        for name, value in values.items():
            setattr(receipt, name, value)
        self.commit()
        return Outcome.success(receipt)

    def _has_payment(self, receipt):
        return self.session.query(Payment.id).filter(Payment.receipt_id == receipt.id).first() is not None

    def associate(self, receipt_id, bill_id, user_id) -> Outcome:
        receipt = self.owned(Receipt, receipt_id, user_id, lock=True)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        bill, failure = self._open_bill(bill_id, user_id)
        if failure is not None:
            return failure
        if receipt.bill_id != bill.id and self._has_payment(receipt):
            return Outcome.fail(Failure.INVALID_STATE, "A paid receipt cannot move to another bill")
        receipt.bill_id = bill.id
        self.commit()
        return Outcome.success(receipt)

    def remove_from_bill(self, receipt_id, user_id) -> Outcome:
        receipt = self.owned(Receipt, receipt_id, user_id, lock=True)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if receipt.bill_id is not None and self._has_payment(receipt):
            return Outcome.fail(Failure.INVALID_STATE, "A paid receipt cannot leave its bill")
        receipt.bill_id = None
        self.commit()
        return Outcome.success(receipt)

    def associated_bill(self, receipt_id, user_id) -> Outcome:
        receipt = self.owned(Receipt, receipt_id, user_id)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if receipt.bill_id is None:
            return Outcome.success(None)
        return Outcome.success(self.owned(Bill, receipt.bill_id, user_id))

    def available_bills(self, user_id):
        return (
            self.session.query(Bill)
            .filter(Bill.user_id == user_id, Bill.status != ItemStatus.REJECTED)
            .order_by(Bill.upload_date.desc(), Bill.id.desc())
            .all()
        )

    def accept_as_payment(self, receipt_id, user_id, payment=None, bill_id=None) -> ApprovalResult:
        try:
            payload = coerce_payment(payment)
            bill_id = parse_int(bill_id)
        except InvalidInput as e:
            return ApprovalResult.refused(Failure.INVALID_INPUT, str(e))

        receipt = self.owned(Receipt, receipt_id, user_id, lock=True)
        if receipt is None:
            return ApprovalResult.refused(Failure.NOT_FOUND)
        values = {"status": ItemStatus.APPROVED, "accepted_at": utcnow()}
        if bill_id is not None:
            _, failure = self._open_bill(bill_id, user_id)
            if failure is not None:
                return ApprovalResult.refused(failure.failure, failure.detail)
            values["bill_id"] = bill_id

        won = self.compare_and_set(Receipt, receipt_id, [ItemStatus.NEW], values, user_id=user_id)
        if not won:
            self.session.rollback()
            return ApprovalResult.refused(Failure.INVALID_STATE, "Receipt is no longer open for acceptance")
        self.commit()

        payment_id, payment_error = create_payment(
            self.session, self.payments.create_for_receipt, receipt, payload
        )
        return ApprovalResult(
            approved=True, entity=receipt, payment_id=payment_id, payment_error=payment_error
        )

    def reject(self, receipt_id, user_id) -> Outcome:
        receipt = self.owned(Receipt, receipt_id, user_id)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if not self.compare_and_set(
            Receipt, receipt_id, [ItemStatus.NEW], {"status": ItemStatus.REJECTED}, user_id=user_id
        ):
            self.session.rollback()
            return Outcome.fail(Failure.INVALID_STATE, f"A {receipt.status.value} receipt cannot be rejected")
        self.commit()
        return Outcome.success(receipt)

    def delete(self, receipt_id, user_id) -> Outcome:
        receipt = self.owned(Receipt, receipt_id, user_id, lock=True)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if self._has_payment(receipt):
            return Outcome.fail(Failure.INVALID_STATE, "A payment references this receipt")

        path = receipt.file_path
        source = (
            self.session.get(IncomingFile, receipt.source_file_id) if receipt.source_file_id else None
        )
        self.session.delete(receipt)
        if source is not None:
            self.session.flush()
            self.session.delete(source)
        self.commit()
        if self.storage is not None and path:
            self.storage.delete(path)
        return Outcome.success(receipt_id)
