from sqlalchemy.exc import IntegrityError

from ..models import Bill, Receipt, IncomingFile, Payment, FileStatus, DocumentKind
from ..models.status import INBOX_FILE_STATUSES
from .base import BaseService, utcnow
from .payloads import parse_kind
from .results import Outcome, Failure


class ConversionService(BaseService):
    """
    Turns an uploaded file into a Bill or a Receipt and back.

    The source IncomingFile is never deleted by a conversion: it is flagged
    CONVERTED and hidden from every per-file operation, so a revert restores
    the very same row (id, checksum, upload date) with the OCR values the
    target ended up with.
    """

    def convert_to_bill(self, file_id, user_id) -> Outcome:
        return self._convert(file_id, user_id, DocumentKind.BILL)

    def convert_to_receipt(self, file_id, user_id) -> Outcome:
        return self._convert(file_id, user_id, DocumentKind.RECEIPT)

    def _convert(self, file_id, user_id, kind):
        source = (
            self.session.query(IncomingFile)
            .filter(IncomingFile.id == file_id, IncomingFile.user_id == user_id)
            .with_for_update()
            .one_or_none()
        )
        if source is None or source.is_converted:
            return Outcome.fail(Failure.NOT_FOUND)

        claimed = self.compare_and_set(
            IncomingFile,
            file_id,
            INBOX_FILE_STATUSES,
            {"status": FileStatus.CONVERTED, "converted_to": kind, "converted_at": utcnow()},
            user_id=user_id,
        )
        if not claimed:
            self.session.rollback()
            return Outcome.fail(Failure.INVALID_STATE, "File has already been converted")

        target = self._build_target(source, kind)
        self.session.add(target)
        try:
            self.commit()
        except IntegrityError:
            return Outcome.fail(Failure.INVALID_STATE, "File has already been converted")
        return Outcome.success(target)

    @staticmethod
    def _build_target(source, kind):
        common = dict(
            user_id=source.user_id,
            source_file_id=source.id,
            filename=source.filename,
            file_path=source.file_path,
            checksum=source.checksum,
            upload_date=source.upload_date,
            **source.ocr_fields(),
        )
        if kind == DocumentKind.BILL:
            return Bill(**common)
        return Receipt(
            merchant=source.extracted_provider,
            amount=source.extracted_amount,
            currency=source.extracted_currency,
            payment_date=source.extracted_date,
            **common,
        )

    def revert_bill(self, bill_id, user_id) -> Outcome:
        bill = self.owned(Bill, bill_id, user_id, lock=True)
        if bill is None:
            return Outcome.fail(Failure.NOT_FOUND)
        refusal = self._revert_refusal(bill, Payment.bill_id == bill.id)
        if refusal is not None:
            return refusal
        # Receipts stay, only their link to this bill goes
        self.session.query(Receipt).filter(Receipt.bill_id == bill.id).update(
            {"bill_id": None}, synchronize_session="fetch"
        )
        return self._restore(bill)

    def revert_receipt(self, receipt_id, user_id) -> Outcome:
        receipt = self.owned(Receipt, receipt_id, user_id, lock=True)
        if receipt is None:
            return Outcome.fail(Failure.NOT_FOUND)
        refusal = self._revert_refusal(receipt, Payment.receipt_id == receipt.id)
        if refusal is not None:
            return refusal
        receipt.bill_id = None
        return self._restore(receipt)

    def _revert_refusal(self, target, payment_clause):
        if target.source_file_id is None:
            return Outcome.fail(Failure.INVALID_STATE, "Not created from an uploaded file")
        if self.session.query(Payment.id).filter(payment_clause).first() is not None:
            return Outcome.fail(Failure.INVALID_STATE, "A payment references this document")
        return None

    def _restore(self, target):
        values = {
            "status": FileStatus.NEW,
            "converted_to": None,
            "converted_at": None,
            "failure_reason": None,
            "task_id": None,
        }
        values.update(target.ocr_fields())
        restored = self.compare_and_set(
            IncomingFile, target.source_file_id, [FileStatus.CONVERTED], values, user_id=target.user_id
        )
        if not restored:
            self.session.rollback()
            return Outcome.fail(Failure.INVALID_STATE, "Source file is not in a convertible state")

        source = self.session.get(IncomingFile, target.source_file_id)
        self.session.delete(target)
        self.commit()
        return Outcome.success(source)

    def can_revert(self, kind, entity_id, user_id) -> bool:
        kind = parse_kind(kind)
        if kind == DocumentKind.BILL:
            target = self.owned(Bill, entity_id, user_id)
            clause = Payment.bill_id == entity_id
        else:
            target = self.owned(Receipt, entity_id, user_id)
            clause = Payment.receipt_id == entity_id
        return target is not None and self._revert_refusal(target, clause) is None
