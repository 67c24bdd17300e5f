import enum


class FileStatus(str, enum.Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    FAILED = "FAILED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    # Converted files stay in the table so a revert can restore them exactly
    CONVERTED = "CONVERTED"


# States an uploaded file shows up with in the inbox
INBOX_FILE_STATUSES = (
    FileStatus.NEW,
    FileStatus.PROCESSING,
    FileStatus.DONE,
    FileStatus.FAILED,
    FileStatus.APPROVED,
    FileStatus.REJECTED,
)


class ItemStatus(str, enum.Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DocumentKind(str, enum.Enum):
    BILL = "BILL"
    RECEIPT = "RECEIPT"


class OcrAttemptStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class PaymentMethodType(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    BANK = "BANK"
    OTHER = "OTHER"
