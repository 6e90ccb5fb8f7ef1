# services/captcha/solver.py
"""
CaptchaSolver

Behavior:
 - recognize(): base64 image -> decode -> preprocess -> OCR -> solve_text()
 - solve_text(): raw OCR text -> canonical expression -> integer result + trace
 - Test mode: the literal payload "test-captcha" skips OCR and solves the
   canned text "0 x 8 + 6 = ?" (result 6), so clients can check wiring
   without a real image.
 - Errors from every stage propagate unchanged; no partial results.
"""

from __future__ import annotations

from typing import Optional, Protocol

from PIL import Image

from core.config import settings
from core.logger import logger
from services.captcha.evaluator import ExpressionEvaluator, default_evaluator
from services.captcha.expression_extractor import ExpressionExtractor, clean_text, default_extractor
from services.captcha.models import RecognitionResult
from utils.image_utils import decode_base64_image, load_image, preprocess_image

TEST_CAPTCHA_PAYLOAD = "test-captcha"
TEST_CAPTCHA_TEXT = "0 x 8 + 6 = ?"


class TextRecognizer(Protocol):
    def recognize(self, image: Image.Image) -> str: ...


class CaptchaSolver:
    """Read an arithmetic captcha and compute its answer."""

    def __init__(
        self,
        ocr: Optional[TextRecognizer] = None,
        extractor: Optional[ExpressionExtractor] = None,
        evaluator: Optional[ExpressionEvaluator] = None,
        preprocess: Optional[bool] = None,
        test_mode: Optional[bool] = None,
    ) -> None:
        self._ocr = ocr
        self.extractor = extractor or default_extractor()
        self.evaluator = evaluator or default_evaluator()
        self.preprocess = settings.preprocess_images if preprocess is None else preprocess
        self.test_mode = settings.enable_test_mode if test_mode is None else test_mode

    @property
    def ocr(self) -> TextRecognizer:
        # Created on first use so text-only callers never touch Tesseract
        if self._ocr is None:
            from services.ocr.captcha_ocr import CaptchaOCR

            self._ocr = CaptchaOCR()
        return self._ocr

    def solve_text(self, raw_text: str) -> RecognitionResult:
        cleaned = clean_text(raw_text)
        logger.info("Cleaned text: %r", cleaned)

        expression = self.extractor.extract(raw_text)
        logger.info("Extracted expression: %r", expression)

        result, trace = self.evaluator.evaluate(expression)
        return RecognitionResult(
            result=result,
            raw_ocr_result=raw_text,
            cleaned_text=cleaned,
            expression=expression,
            calculation=" = ".join(trace),
        )

    def recognize(self, image_b64: str) -> RecognitionResult:
        logger.info("=== Starting captcha recognition ===")
        if self.test_mode and image_b64 == TEST_CAPTCHA_PAYLOAD:
            logger.info("Test mode payload received, skipping OCR")
            raw_text = TEST_CAPTCHA_TEXT
        else:
            image = load_image(decode_base64_image(image_b64))
            if self.preprocess:
                image = preprocess_image(image)
            raw_text = self.ocr.recognize(image)

        recognition = self.solve_text(raw_text)
        logger.info("=== Recognition complete. Result: %d ===", recognition.result)
        return recognition
