import enum
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


class Failure(str, enum.Enum):
    # Not found and not owned are deliberately indistinguishable
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_UPLOAD = "DUPLICATE_UPLOAD"
    INVALID_FILE = "INVALID_FILE"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_STATE = "INVALID_STATE"
    OCR_UNAVAILABLE = "OCR_UNAVAILABLE"


@dataclass
class Outcome(Generic[T]):
    """Either a value or a tagged failure with a human readable detail."""

    value: Optional[T] = None
    failure: Optional[Failure] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, failure: Failure, detail: Optional[str] = None) -> "Outcome[T]":
        return cls(failure=failure, detail=detail or failure.value.replace("_", " ").lower())


@dataclass
class ApprovalResult:
    """
    Result of approving a bill or accepting a receipt. `approved=True` with
    no `payment_id` is a normal end state: the payment was either not
    requested or failed after the approval had been committed, in which case
    `payment_error` says why.
    """

    approved: bool
    entity: Any = None
    payment_id: Optional[int] = None
    payment_error: Optional[str] = None
    failure: Optional[Failure] = None
    detail: Optional[str] = None

    @classmethod
    def refused(cls, failure: Failure, detail: Optional[str] = None) -> "ApprovalResult":
        return cls(approved=False, failure=failure, detail=detail or failure.value.replace("_", " ").lower())

    def to_dict(self):
        return {
            "approved": self.approved,
            "payment_id": self.payment_id,
            "payment_error": self.payment_error,
            "entity": self.entity.to_dict() if self.entity is not None else None,
        }


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    page: int = 1
    per_page: int = 20
    total: int = 0

    @property
    def pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page

    def to_dict(self):
        return {
            "items": [item.to_dict() for item in self.items],
            "page": self.page,
            "per_page": self.per_page,
            "total": self.total,
            "pages": self.pages,
        }
