"""
Importing this package registers every model with SQLAlchemy, which
Flask-Migrate and ``db.create_all()`` rely on.
"""
from .user import User
from .incoming_file import IncomingFile
from .ocr_attempt import OcrAttempt
from .bill import Bill
from .receipt import Receipt
from .payment import Payment
from .catalog import ServiceProvider, PaymentMethod
from .status import FileStatus, ItemStatus, DocumentKind, OcrAttemptStatus, PaymentMethodType

__all__ = [
    "User",
    "IncomingFile",
    "OcrAttempt",
    "Bill",
    "Receipt",
    "Payment",
    "ServiceProvider",
    "PaymentMethod",
    "FileStatus",
    "ItemStatus",
    "DocumentKind",
    "OcrAttemptStatus",
    "PaymentMethodType",
]
