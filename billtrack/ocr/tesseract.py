import logging
import os
from typing import List

import cv2
import numpy as np
import pytesseract
from pdf2image import convert_from_path

from .engine import OcrEngine, OcrResult
from .parser import parse_fields

logger = logging.getLogger(__name__)

PAGE_BREAK = "\n\n--- Page Break ---\n\n"


class TesseractEngine(OcrEngine):
    """
    Tesseract OCR with OpenCV preprocessing. PDFs are rasterised page by page
    with pdf2image; every Tesseract call is bounded by `timeout` seconds.
    """

    name = "tesseract"

    def __init__(self, cmd=None, lang="eng", timeout=60, poppler_path=None) -> None:
        self.cmd = cmd
        self.lang = lang
        self.timeout = timeout
        self.poppler_path = poppler_path

    def is_available(self) -> bool:
        if not self.cmd:
            return False
        try:
            pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError):
            return False
        return True

    # ---------- preprocessing ----------

    @staticmethod
    def _to_gray(img: np.ndarray) -> np.ndarray:
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

    @staticmethod
    def _denoise(gray: np.ndarray) -> np.ndarray:
        return cv2.fastNlMeansDenoising(gray, None, h=10, templateWindowSize=7, searchWindowSize=21)

    @staticmethod
    def _deskew(gray: np.ndarray) -> np.ndarray:
        thr = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)[1]
        coords = np.column_stack(np.where(thr == 0))
        if coords.size == 0:
            return gray
        angle = cv2.minAreaRect(coords)[-1]
        angle = -(90 + angle) if angle < -45 else -angle
        (h, w) = gray.shape[:2]
        m = cv2.getRotationMatrix2D((w // 2, h // 2), angle, 1.0)
        return cv2.warpAffine(gray, m, (w, h), flags=cv2.INTER_CUBIC, borderMode=cv2.BORDER_REPLICATE)

    @staticmethod
    def _binarize(gray: np.ndarray) -> np.ndarray:
        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        return cv2.adaptiveThreshold(
            clahe.apply(gray), 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 31, 15
        )

    def preprocess(self, img: np.ndarray) -> np.ndarray:
        return self._binarize(self._deskew(self._denoise(self._to_gray(img))))

    # ---------- OCR ----------

    def _images(self, path: str) -> List[np.ndarray]:
        if os.path.splitext(path)[1].lower() == ".pdf":
            pages = convert_from_path(path, poppler_path=self.poppler_path, fmt="jpeg")
            # PIL pages are RGB, OpenCV wants BGR
            return [cv2.cvtColor(np.array(page), cv2.COLOR_RGB2BGR) for page in pages]
        img = cv2.imread(path)
        if img is None:
            raise ValueError(f"Could not read image: {path}")
        return [img]

    def _image_to_text(self, img: np.ndarray) -> str:
        # PSM 4 assumes a single column of text of variable sizes
        text = pytesseract.image_to_string(
            img, lang=self.lang, config="--oem 3 --psm 4", timeout=self.timeout
        ).strip()
        if len(text) < 20:
            fallback = pytesseract.image_to_string(
                img, lang=self.lang, config="--oem 3 --psm 6", timeout=self.timeout
            ).strip()
            if len(fallback) > len(text):
                return fallback
        return text

    def extract_text(self, path: str) -> str:
        return PAGE_BREAK.join(self._image_to_text(self.preprocess(img)) for img in self._images(path))

    def extract(self, path: str) -> OcrResult:
        if not os.path.exists(path):
            return OcrResult.failed(f"File not found: {path}", engine=self.name)
        try:
            text = self.extract_text(path)
        except RuntimeError as e:
            # pytesseract raises RuntimeError when the timeout kills the process
            logger.warning("Tesseract timed out on %s: %s", path, e)
            return OcrResult.failed(f"OCR timed out after {self.timeout}s", engine=self.name)
        except (pytesseract.TesseractError, ValueError, OSError) as e:
            logger.warning("Tesseract failed on %s: %s", path, e)
            return OcrResult.failed(str(e), engine=self.name)

        if not text:
            return OcrResult.failed("No text recognised", engine=self.name)

        fields = parse_fields(text)
        logger.info("Tesseract extracted %d characters from %s", len(text), path)
        return OcrResult.succeeded(
            provider=fields["provider"],
            amount=fields["amount"],
            date=fields["date"],
            currency=fields["currency"],
            raw={"text": text, "fields": fields},
            engine=self.name,
        )
