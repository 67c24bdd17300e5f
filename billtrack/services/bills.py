from typing import Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..models import Bill, Receipt, Payment, IncomingFile, ItemStatus
from .base import BaseService, utcnow
from .payloads import FieldEdits, InvalidInput, PaymentPayload
from .results import Outcome, Failure, ApprovalResult

OPEN_STATUSES = (ItemStatus.NEW, ItemStatus.PROCESSING)


def coerce_edits(draft):
    if draft is None or isinstance(draft, FieldEdits):
        return draft
    if isinstance(draft, Mapping):
        return FieldEdits.from_mapping(draft)
    raise InvalidInput("Draft must be a mapping")


def coerce_payment(payment):
    if payment is None or isinstance(payment, PaymentPayload):
        return payment
    if isinstance(payment, Mapping):
        return PaymentPayload.from_mapping(payment)
    raise InvalidInput("Payment must be a mapping")


def create_payment(session, create, entity, payload):
    """
    Run one of the PaymentService creators after an approval was committed.
    Returns (payment_id, payment_error); a failure here never undoes the approval.
    """
    if payload is None or not payload.is_complete:
        return None, None
    try:
        outcome = create(entity, payload)
    except SQLAlchemyError as e:
        session.rollback()
        return None, f"Payment could not be saved: {e.__class__.__name__}"
    if not outcome:
        return None, outcome.detail
    return outcome.value.id, None


class BillService(BaseService):
    def __init__(self, session, payments, storage=None) -> None:
        super().__init__(session)
        self.payments = payments
        self.storage = storage

    def find(self, bill_id, user_id) -> Outcome:
        bill = self.owned(Bill, bill_id, user_id)
        if bill is None:
            return Outcome.fail(Failure.NOT_FOUND)
        return Outcome.success(bill)

    @staticmethod
    def _apply_draft(bill, edits):
        if edits.amount is not None:
            bill.draft_amount = edits.amount
        if edits.date is not None:
            bill.draft_date = edits.date
        if edits.provider is not None:
            bill.draft_provider = edits.provider
        if edits.currency is not None:
            bill.draft_currency = edits.currency

    def save_draft(self, bill_id, user_id, draft) -> Outcome:
        try:
            edits = coerce_edits(draft)
        except InvalidInput as e:
            return Outcome.fail(Failure.INVALID_INPUT, str(e))
        bill = self.owned(Bill, bill_id, user_id, lock=True)
        if bill is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if bill.status not in OPEN_STATUSES:
            return Outcome.fail(Failure.INVALID_STATE, f"A {bill.status.value} bill cannot be edited")
        if edits is not None:
            self._apply_draft(bill, edits)
        # PROCESSING marks a bill with pending edits
        bill.status = ItemStatus.PROCESSING
        self.commit()
        return Outcome.success(bill)

    def approve(self, bill_id, user_id, draft=None, payment=None) -> ApprovalResult:
        try:
            edits = coerce_edits(draft)
            payload = coerce_payment(payment)
        except InvalidInput as e:
            return ApprovalResult.refused(Failure.INVALID_INPUT, str(e))

        bill = self.owned(Bill, bill_id, user_id, lock=True)
        if bill is None:
            return ApprovalResult.refused(Failure.NOT_FOUND)
        if edits is not None:
            self._apply_draft(bill, edits)

        won = self.compare_and_set(
            Bill,
            bill_id,
            OPEN_STATUSES,
            {"status": ItemStatus.APPROVED, "approved_at": utcnow()},
            user_id=user_id,
        )
        if not won:
            # Drops the draft edits along with the failed transition
            self.session.rollback()
            return ApprovalResult.refused(Failure.INVALID_STATE, "Bill is no longer open for approval")
        self.commit()

        payment_id, payment_error = create_payment(
            self.session, self.payments.create_for_bill, bill, payload
        )
        return ApprovalResult(
            approved=True, entity=bill, payment_id=payment_id, payment_error=payment_error
        )

    def reject(self, bill_id, user_id) -> Outcome:
        bill = self.owned(Bill, bill_id, user_id)
        if bill is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if not self.compare_and_set(
            Bill, bill_id, OPEN_STATUSES, {"status": ItemStatus.REJECTED}, user_id=user_id
        ):
            self.session.rollback()
            return Outcome.fail(Failure.INVALID_STATE, f"A {bill.status.value} bill cannot be rejected")
        self.commit()
        return Outcome.success(bill)

    def delete(self, bill_id, user_id) -> Outcome:
        bill = self.owned(Bill, bill_id, user_id, lock=True)
        if bill is None:
            return Outcome.fail(Failure.NOT_FOUND)
        if self.session.query(Payment.id).filter(Payment.bill_id == bill.id).first() is not None:
            return Outcome.fail(Failure.INVALID_STATE, "A payment references this bill")

        self.session.query(Receipt).filter(Receipt.bill_id == bill.id).update(
            {"bill_id": None}, synchronize_session="fetch"
        )
        path = bill.file_path
        source = self.session.get(IncomingFile, bill.source_file_id) if bill.source_file_id else None
        self.session.delete(bill)
        if source is not None:
            # The hidden converted file goes with the bill that replaced it
            self.session.flush()
            self.session.delete(source)
        self.commit()
        if self.storage is not None and path:
            self.storage.delete(path)
        return Outcome.success(bill_id)

    def receipts_for(self, bill_id, user_id) -> Outcome:
        bill = self.owned(Bill, bill_id, user_id)
        if bill is None:
            return Outcome.fail(Failure.NOT_FOUND)
        receipts = (
            self.session.query(Receipt)
            .filter(Receipt.bill_id == bill.id, Receipt.user_id == user_id)
            .order_by(Receipt.created_at.desc(), Receipt.id.desc())
            .all()
        )
        return Outcome.success(receipts)
