import logging
from typing import Iterable, List

from .engine import OcrEngine, OcrResult

logger = logging.getLogger(__name__)


class OcrGateway:
    """Tries each available engine in registration order until one succeeds."""

    def __init__(self, engines: Iterable[OcrEngine] = (), enabled: bool = True) -> None:
        self.engines: List[OcrEngine] = list(engines)
        self.enabled = enabled

    def register(self, engine: OcrEngine) -> None:
        self.engines.append(engine)

    def available_engines(self) -> List[str]:
        if not self.enabled:
            return []
        return [engine.name for engine in self.engines if engine.is_available()]

    def is_available(self) -> bool:
        return bool(self.available_engines())

    def extract(self, path: str) -> OcrResult:
        if not self.enabled:
            return OcrResult.failed("OCR is disabled")
        errors = []
        for engine in self.engines:
            if not engine.is_available():
                continue
            result = engine.extract(path)
            if result.engine is None:
                result.engine = engine.name
            if result.success:
                return result
            logger.info("OCR engine %s failed on %s: %s", engine.name, path, result.error)
            errors.append((engine.name, result.error))
        if not errors:
            return OcrResult.failed("No OCR engine available")
        if len(errors) == 1:
            return OcrResult.failed(errors[0][1], engine=errors[0][0])
        return OcrResult.failed("; ".join(f"{name}: {error}" for name, error in errors), engine=result.engine)
