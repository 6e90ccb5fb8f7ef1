"""Result record returned for a recognized captcha."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RecognitionResult:
    """
    Outcome of one captcha read.

    `raw_ocr_result` is the OCR text exactly as returned, `cleaned_text` the
    whitespace-collapsed text, `expression` the canonical expression that was
    evaluated, `calculation` the trace joined by " = ".
    """

    result: int
    raw_ocr_result: str
    cleaned_text: str
    expression: str
    calculation: str

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: result at the top level, diagnostics under "details"."""
        return {
            "result": self.result,
            "details": {
                "rawOcrResult": self.raw_ocr_result,
                "cleanedText": self.cleaned_text,
                "expression": self.expression,
                "calculation": self.calculation,
            },
        }
