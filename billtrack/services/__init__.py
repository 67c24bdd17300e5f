"""
Core services. They take their collaborators (session, storage, OCR gateway,
OCR dispatcher) explicitly and report expected failures as `Outcome` values;
only unexpected database or I/O errors propagate.
"""
from dataclasses import dataclass

from flask import current_app

from ..extensions import db

from .bills import BillService
from .catalog import CatalogService
from .conversion import ConversionService
from .inbox import InboxService
from .incoming_files import IncomingFileService
from .payments import PaymentService
from .receipts import ReceiptService
from .results import ApprovalResult, Failure, Outcome, Page


@dataclass
class Services:
    files: IncomingFileService
    conversion: ConversionService
    bills: BillService
    receipts: ReceiptService
    payments: PaymentService
    inbox: InboxService
    catalog: CatalogService


def build_services(session, storage, gateway, dispatch_ocr=None, config=None) -> Services:
    config = config or {}
    payments = PaymentService(session, default_currency=config.get("DEFAULT_CURRENCY", "USD"))
    conversion = ConversionService(session)
    files = IncomingFileService(
        session,
        storage,
        gateway,
        dispatch_ocr=dispatch_ocr,
        allowed_extensions=config.get("ALLOWED_EXTENSIONS", ("pdf", "jpg", "jpeg", "png", "gif", "bmp", "tiff")),
        max_upload_size=config.get("MAX_UPLOAD_SIZE", 20 * 1024 * 1024),
        conversion=conversion,
    )
    return Services(
        files=files,
        conversion=conversion,
        bills=BillService(session, payments, storage),
        receipts=ReceiptService(session, payments, storage),
        payments=payments,
        inbox=InboxService(
            session,
            payments,
            gateway,
            default_page_size=config.get("DEFAULT_PAGE_SIZE", 20),
            max_page_size=config.get("MAX_PAGE_SIZE", 100),
        ),
        catalog=CatalogService(session),
    )


def queue_ocr(file_id):
    """Hand a file to the Celery worker and return the task id."""
    from ..celery_worker import process_ocr

    return process_ocr.delay(file_id).id


def get_services(inline_ocr=False) -> Services:
    """Services bound to the current Flask app and its scoped session."""
    dispatch_ocr = None if inline_ocr else current_app.extensions.get("billtrack.dispatch_ocr", queue_ocr)
    return build_services(
        db.session,
        current_app.extensions["billtrack.storage"],
        current_app.extensions["billtrack.ocr"],
        dispatch_ocr=dispatch_ocr,
        config=current_app.config,
    )


__all__ = [
    "ApprovalResult",
    "BillService",
    "CatalogService",
    "ConversionService",
    "Failure",
    "InboxService",
    "IncomingFileService",
    "Outcome",
    "Page",
    "PaymentService",
    "ReceiptService",
    "Services",
    "build_services",
    "get_services",
]
