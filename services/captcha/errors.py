"""Exceptions raised while reading an arithmetic captcha."""
from __future__ import annotations


class ExtractionError(ValueError):
    """No two- or three-operand expression could be recovered from OCR text."""


class EvaluationError(ValueError):
    """Expression is malformed or divides by zero."""


class ImageDecodeError(ValueError):
    """Captcha payload is not valid base64 or not a readable image."""


class OCRUnavailableError(RuntimeError):
    """Tesseract binary could not be found or started."""
