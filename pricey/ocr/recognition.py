"""Optical character recognition for receipt images."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .errors import CorruptImageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OCRResult:
    text: str
    confidence: float  # 0.0-1.0


class OCREngine(ABC):
    """Turns image bytes into text. Implementations are blocking."""

    @abstractmethod
    def recognize(self, image_bytes: bytes) -> OCRResult:
        ...


def _import_cv2():
    try:
        import cv2
        import numpy as np
    except ImportError:
        raise ImportError(
            "opencv-python-headless is required: pip install 'pricey-ocr[ocr]'"
        ) from None
    return cv2, np


def _import_pytesseract():
    try:
        import pytesseract
    except ImportError:
        raise ImportError(
            "pytesseract is required: pip install 'pricey-ocr[ocr]'"
        ) from None
    return pytesseract


class TesseractOCR(OCREngine):
    """Tesseract OCR with OpenCV preprocessing.

    The image is converted to grayscale, contrast-normalized, sharpened and
    scaled down to ``max_width`` before recognition.
    """

    def __init__(self, language: str = "eng", max_width: int = 2000) -> None:
        self._language = language
        self._max_width = max_width

    def preprocess(self, image_bytes: bytes):
        """Decode and clean up an image for recognition.

        Raises:
            CorruptImageError: If the bytes are not a decodable image.
        """
        cv2, np = _import_cv2()

        buf = np.frombuffer(image_bytes, dtype=np.uint8)
        image = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
        if image is None:
            raise CorruptImageError("Image bytes could not be decoded")

        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)
        kernel = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]])
        gray = cv2.filter2D(gray, -1, kernel)

        height, width = gray.shape[:2]
        if width > self._max_width:
            scale = self._max_width / width
            gray = cv2.resize(
                gray,
                (self._max_width, int(height * scale)),
                interpolation=cv2.INTER_AREA,
            )
        return gray

    def recognize(self, image_bytes: bytes) -> OCRResult:
        pytesseract = _import_pytesseract()
        image = self.preprocess(image_bytes)

        data = pytesseract.image_to_data(
            image, lang=self._language, output_type=pytesseract.Output.DICT
        )
        text = pytesseract.image_to_string(image, lang=self._language)

        # Tesseract reports -1 for non-word boxes
        scores = [float(c) for c in data.get("conf", []) if float(c) >= 0]
        confidence = sum(scores) / len(scores) / 100 if scores else 0.0

        logger.info(
            "OCR complete: %d chars, confidence=%.2f", len(text), confidence
        )
        return OCRResult(text=text, confidence=round(confidence, 2))
