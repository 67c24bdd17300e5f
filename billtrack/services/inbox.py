from sqlalchemy import func

from ..models import IncomingFile, Bill, Receipt, Payment, OcrAttempt, FileStatus, ItemStatus, DocumentKind
from ..models.status import INBOX_FILE_STATUSES
from .base import BaseService
from .payloads import InvalidInput, parse_kind, parse_status
from .results import Outcome, Failure, Page

# Whitelisted sort keys per listing; the first one is the default
SORT_KEYS = {
    IncomingFile: ("upload_date", "filename", "status", "extracted_amount", "extracted_date", "id"),
    Bill: ("upload_date", "filename", "status", "extracted_amount", "draft_amount", "approved_at", "id"),
    Receipt: ("created_at", "upload_date", "merchant", "amount", "payment_date", "status", "id"),
    Payment: ("payment_date", "invoice_date", "amount", "created_at", "id"),
}


class InboxService(BaseService):
    """Read side: paginated listings, per-status statistics and OCR status."""

    def __init__(self, session, payments, gateway=None, default_page_size=20, max_page_size=100) -> None:
        super().__init__(session)
        self.payments = payments
        self.gateway = gateway
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def _paginate(self, query, model, page=1, per_page=None, sort=None, direction="desc"):
        keys = SORT_KEYS[model]
        sort = sort if sort in keys else keys[0]
        column = getattr(model, sort)
        order = column.asc() if direction == "asc" else column.desc()
        # id as tie breaker keeps pages stable
        tie = model.id.asc() if direction == "asc" else model.id.desc()

        page = max(1, int(page or 1))
        per_page = int(per_page or self.default_page_size)
        per_page = max(1, min(per_page, self.max_page_size))

        total = query.order_by(None).count()
        items = query.order_by(order, tie).offset((page - 1) * per_page).limit(per_page).all()
        return Page(items=items, page=page, per_page=per_page, total=total)

    def list_files(self, user_id, status=None, **paging) -> Page:
        query = self.session.query(IncomingFile).filter(
            IncomingFile.user_id == user_id, IncomingFile.status != FileStatus.CONVERTED
        )
        if status:
            query = query.filter(IncomingFile.status == parse_status(FileStatus, status))
        return self._paginate(query, IncomingFile, **paging)

    def list_bills(self, user_id, status=None, **paging) -> Page:
        query = self.session.query(Bill).filter(Bill.user_id == user_id)
        if status:
            query = query.filter(Bill.status == parse_status(ItemStatus, status))
        return self._paginate(query, Bill, **paging)

    def list_receipts(self, user_id, status=None, bill_id=None, standalone=False, **paging) -> Page:
        query = self.session.query(Receipt).filter(Receipt.user_id == user_id)
        if status:
            query = query.filter(Receipt.status == parse_status(ItemStatus, status))
        if bill_id is not None:
            query = query.filter(Receipt.bill_id == bill_id)
        elif standalone:
            query = query.filter(Receipt.bill_id.is_(None))
        return self._paginate(query, Receipt, **paging)

    def list_payments(self, user_id, **paging) -> Page:
        query = self.session.query(Payment).filter(Payment.user_id == user_id)
        return self._paginate(query, Payment, **paging)

    def _counts(self, model, user_id, statuses):
        rows = (
            self.session.query(model.status, func.count(model.id))
            .filter(model.user_id == user_id)
            .group_by(model.status)
            .all()
        )
        found = {status: count for status, count in rows}
        return {status.value: found.get(status, 0) for status in statuses}

    def statistics(self, user_id):
        associated = (
            self.session.query(func.count(Receipt.id))
            .filter(Receipt.user_id == user_id, Receipt.bill_id.isnot(None))
            .scalar()
        )
        total = self.session.query(func.count(Receipt.id)).filter(Receipt.user_id == user_id).scalar()
        return {
            "incoming_files": self._counts(IncomingFile, user_id, INBOX_FILE_STATUSES),
            "bills": self._counts(Bill, user_id, ItemStatus),
            "receipts": self._counts(Receipt, user_id, ItemStatus),
            "receipt_association": {
                "associated": associated,
                "standalone": total - associated,
                "total": total,
            },
            "payments": self.payments.statistics(user_id),
        }

    def tab_counts(self, user_id):
        files = self._counts(IncomingFile, user_id, INBOX_FILE_STATUSES)
        bills = self._counts(Bill, user_id, ItemStatus)
        receipts = self._counts(Receipt, user_id, ItemStatus)
        return {
            "new": files["NEW"] + bills["NEW"] + receipts["NEW"],
            "approved": bills["APPROVED"] + receipts["APPROVED"],
            "rejected": bills["REJECTED"] + receipts["REJECTED"],
        }

    def ocr_status(self):
        engines = self.gateway.available_engines() if self.gateway is not None else []
        return {"available": bool(engines), "engines": engines}

    def ocr_history(self, user_id, file_id=None, kind=None, entity_id=None) -> Outcome:
        """
        OCR attempts for an inbox file, or for the file a bill or receipt was
        converted from.
        """
        if file_id is not None:
            f = self.owned(IncomingFile, file_id, user_id)
            if f is None or f.is_converted:
                return Outcome.fail(Failure.NOT_FOUND)
            source_id = f.id
        else:
            try:
                model = Bill if parse_kind(kind) == DocumentKind.BILL else Receipt
            except InvalidInput as e:
                return Outcome.fail(Failure.INVALID_INPUT, str(e))
            target = self.owned(model, entity_id, user_id)
            if target is None:
                return Outcome.fail(Failure.NOT_FOUND)
            if target.source_file_id is None:
                return Outcome.success([])
            source_id = target.source_file_id
        attempts = (
            self.session.query(OcrAttempt)
            .filter(OcrAttempt.incoming_file_id == source_id, OcrAttempt.user_id == user_id)
            .order_by(OcrAttempt.started_at.desc(), OcrAttempt.id.desc())
            .all()
        )
        return Outcome.success(attempts)
