"""Tesseract OCR tuned for single-line arithmetic captchas."""
from __future__ import annotations

import pytesseract
from PIL import Image

from core.config import settings
from core.logger import logger
from services.captcha.errors import OCRUnavailableError


class CaptchaOCR:
    """Read the raw text of an arithmetic captcha image."""

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        language: str | None = None,
        char_whitelist: str | None = None,
        psm: int | None = None,
        oem: int | None = None,
    ) -> None:
        self.language = language or settings.ocr_language
        self.char_whitelist = char_whitelist or settings.ocr_char_whitelist
        self.psm = psm if psm is not None else settings.ocr_psm
        self.oem = oem if oem is not None else settings.ocr_oem
        self._initialize_tesseract(tesseract_cmd or settings.tesseract_cmd)

    def _initialize_tesseract(self, tesseract_cmd: str | None) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
            logger.info("Tesseract initialized: %s", tesseract_cmd)
        else:
            logger.warning("Tesseract OCR not found. Captcha recognition will not work.")

    @property
    def config(self) -> str:
        """Tesseract CLI flags: single line, LSTM, whitelist, no dictionaries."""
        return (
            f"--oem {self.oem} --psm {self.psm} "
            f"-c tessedit_char_whitelist={self.char_whitelist} "
            "-c preserve_interword_spaces=0 "
            "-c load_system_dawg=0 "
            "-c load_freq_dawg=0"
        )

    def recognize(self, image: Image.Image) -> str:
        """Return the OCR text exactly as Tesseract produced it."""
        try:
            text = pytesseract.image_to_string(image, lang=self.language, config=self.config)
        except pytesseract.TesseractNotFoundError as exc:
            raise OCRUnavailableError(
                "Tesseract OCR is not installed or not on PATH. "
                "Install it or set TESSERACT_CMD."
            ) from exc

        logger.info("Raw OCR result: %r", text)
        return text
