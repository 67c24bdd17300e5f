from .engine import OcrEngine, OcrResult
from .gateway import OcrGateway
from .tesseract import TesseractEngine

__all__ = ["OcrEngine", "OcrResult", "OcrGateway", "TesseractEngine"]
