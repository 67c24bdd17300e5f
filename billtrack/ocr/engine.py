import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass
class OcrResult:
    """Fields extracted from one document, or the reason extraction failed."""

    success: bool
    provider: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[date] = None
    currency: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    engine: Optional[str] = None

    @classmethod
    def succeeded(cls, provider=None, amount=None, date=None, currency=None, raw=None, engine=None):
        return cls(
            success=True,
            provider=provider,
            amount=amount,
            date=date,
            currency=currency,
            raw=raw or {},
            engine=engine,
        )

    @classmethod
    def failed(cls, error: str, raw=None, engine=None):
        return cls(success=False, error=error, raw=raw or {}, engine=engine)

    @property
    def raw_json(self) -> str:
        return json.dumps(self.raw, default=str)


class OcrEngine:
    """
    Interface every OCR engine implements. `extract` must not raise for
    problems with the document itself; those come back as a failed result.
    """

    name = "base"

    def is_available(self) -> bool:
        raise NotImplementedError

    def extract(self, path: str) -> OcrResult:
        raise NotImplementedError
