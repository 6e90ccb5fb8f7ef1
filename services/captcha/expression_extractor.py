# services/captcha/expression_extractor.py
"""
ExpressionExtractor

Turns raw OCR text from an arithmetic captcha ("0 x 8 + 6 = ?") into a short
canonical expression ("0*8+6") made only of digits and + - * /.

Behavior:
 - Collapse whitespace, strip "=?" style trailers, map "x" to "*", drop every
   other non-digit, non-operator character.
 - Clamp the residue to a few characters; longer tails are OCR noise.
 - Apply the exact-match noise correction table once.
 - Try candidate strategies in order, first hit wins:
     three operands -> two operands -> prefix scan -> rebuild from runs -> passthrough
 - Shrink an over-long result with the operand patterns and a wider prefix scan.

The length clamp is lossy: operands longer than the clamp are cut off.
"""

from __future__ import annotations

import re
from functools import lru_cache, partial
from typing import Callable, Mapping, Optional, Sequence, Tuple

from core.config import settings
from core.logger import logger
from services.captcha.errors import ExtractionError
from services.captcha.noise_corrections import DEFAULT_NOISE_CORRECTIONS, build_noise_corrections

THREE_OPERAND_PATTERN = re.compile(r"\d+[+\-*/]\d+[+\-*/]\d+")
TWO_OPERAND_PATTERN = re.compile(r"\d+[+\-*/]\d+")
OPERATOR_PATTERN = re.compile(r"[+\-*/]")
DIGIT_RUN_PATTERN = re.compile(r"\d+")
NON_EXPRESSION_CHARS = re.compile(r"[^0-9+\-*/]")

Strategy = Callable[[str], Optional[str]]
CandidateStrategy = Tuple[str, Strategy]


# -------------------------
# Normalization stages
# -------------------------
def clean_text(raw_text: str) -> str:
    """Trim and remove all whitespace; OCR spacing carries no meaning here."""
    return re.sub(r"\s+", "", (raw_text or "").strip())


def strip_trailers(text: str) -> str:
    """Drop the "= ?" decoration captcha renderers append after the expression."""
    text = re.sub(r"=\?$", "", text)
    text = re.sub(r"\?$", "", text)
    text = re.sub(r"=$", "", text)
    # "=" followed by anything that is not an operator: drop both characters
    return re.sub(r"=[^+\-*/]", "", text)


def normalize_glyphs(text: str) -> str:
    """Lower-case, read "x" as multiplication, keep digits and operators only."""
    return NON_EXPRESSION_CHARS.sub("", text.lower().replace("x", "*"))


def _has_operator_and_two_numbers(candidate: str) -> bool:
    return bool(OPERATOR_PATTERN.search(candidate)) and len(DIGIT_RUN_PATTERN.findall(candidate)) >= 2


# -------------------------
# Candidate strategies
# -------------------------
def match_three_operands(text: str) -> Optional[str]:
    match = THREE_OPERAND_PATTERN.search(text)
    return match.group(0) if match else None


def match_two_operands(text: str) -> Optional[str]:
    match = TWO_OPERAND_PATTERN.search(text)
    return match.group(0) if match else None


def scan_prefix(text: str, min_length: int = 3, max_length: int = 5) -> Optional[str]:
    """First prefix holding at least one operator and two separate numbers."""
    for length in range(min_length, min(max_length, len(text)) + 1):
        prefix = text[:length]
        if _has_operator_and_two_numbers(prefix):
            return prefix
    return None


def rebuild_from_runs(text: str, max_operands: int = 3) -> Optional[str]:
    """
    Rebuild from digit runs and operator characters when they alternate
    (one more number than operators). Keeps at most ``max_operands`` numbers.
    """
    numbers = DIGIT_RUN_PATTERN.findall(text)
    operators = OPERATOR_PATTERN.findall(text)
    if not numbers or not operators or len(numbers) != len(operators) + 1:
        return None

    expression = numbers[0]
    for op, number in list(zip(operators, numbers[1:]))[: max_operands - 1]:
        expression += op + number
    return expression


def passthrough(text: str) -> Optional[str]:
    """Last resort: hand the processed text on as-is; evaluation may reject it."""
    return text


DEFAULT_STRATEGIES: Sequence[CandidateStrategy] = (
    ("three_operands", match_three_operands),
    ("two_operands", match_two_operands),
    ("prefix_scan", partial(scan_prefix, min_length=3, max_length=5)),
    ("rebuild_from_runs", rebuild_from_runs),
    ("passthrough", passthrough),
)

SHORTENING_STRATEGIES: Sequence[CandidateStrategy] = (
    ("three_operands", match_three_operands),
    ("two_operands", match_two_operands),
    ("prefix_scan", partial(scan_prefix, min_length=3, max_length=8)),
)


class ExpressionExtractor:
    """Recover a canonical arithmetic expression from noisy captcha OCR text."""

    def __init__(
        self,
        corrections: Optional[Mapping[str, str]] = None,
        max_processed_length: int = 6,
        min_length: int = 3,
        max_expression_length: int = 10,
        strategies: Sequence[CandidateStrategy] = DEFAULT_STRATEGIES,
        shortening_strategies: Sequence[CandidateStrategy] = SHORTENING_STRATEGIES,
    ) -> None:
        self.corrections = dict(DEFAULT_NOISE_CORRECTIONS if corrections is None else corrections)
        self.max_processed_length = max_processed_length
        self.min_length = min_length
        self.max_expression_length = max_expression_length
        self.strategies = tuple(strategies)
        self.shortening_strategies = tuple(shortening_strategies)

    def preprocess(self, raw_text: str) -> str:
        """Run the normalization stages up to (not including) pattern matching."""
        text = strip_trailers(clean_text(raw_text))
        processed = normalize_glyphs(text)
        logger.debug("[EXTRACT] After trailer stripping: %r, processed: %r", text, processed)

        if len(processed) > self.max_processed_length:
            logger.debug(
                "[EXTRACT] Processed text too long (%d), clamping to %d characters",
                len(processed), self.max_processed_length,
            )
            processed = processed[: self.max_processed_length]

        corrected = self.corrections.get(processed)
        if corrected is not None:
            logger.info("[EXTRACT] Applied noise correction: %s -> %s", processed, corrected)
            processed = corrected

        return processed

    def extract(self, raw_text: str) -> str:
        processed = self.preprocess(raw_text)
        if len(processed) < self.min_length:
            raise ExtractionError(f"Failed to extract expression from text: {raw_text!r}")

        expression = self._first_candidate(processed, self.strategies)
        # passthrough always answers unless strategies were customized without it
        if expression is None:
            raise ExtractionError(f"Failed to extract expression from text: {raw_text!r}")

        if len(expression) > self.max_expression_length:
            logger.warning("[EXTRACT] Expression too long, likely OCR errors: %r", expression)
            shorter = self.shorten(expression)
            if shorter:
                expression = shorter

        logger.debug("[EXTRACT] Final expression: %r", expression)
        return expression

    def shorten(self, expression: str) -> Optional[str]:
        """Shorter well-formed expression inside ``expression``, or None."""
        return self._first_candidate(expression, self.shortening_strategies)

    def _first_candidate(self, text: str, strategies: Sequence[CandidateStrategy]) -> Optional[str]:
        for name, strategy in strategies:
            candidate = strategy(text)
            if candidate:
                logger.debug("[EXTRACT] Strategy %s matched: %r", name, candidate)
                return candidate
        return None


@lru_cache(maxsize=1)
def default_extractor() -> ExpressionExtractor:
    """Extractor configured from ``core.config.settings``."""
    return ExpressionExtractor(
        corrections=build_noise_corrections(settings.noise_corrections_path),
        max_processed_length=settings.max_processed_length,
        max_expression_length=settings.max_expression_length,
    )


def extract(raw_text: str) -> str:
    """Canonical expression from raw OCR text; raises ExtractionError."""
    return default_extractor().extract(raw_text)
