"""Tests for captcha expression extraction."""
from __future__ import annotations

import pytest

from services.captcha.errors import ExtractionError
from services.captcha.expression_extractor import (
    ExpressionExtractor,
    clean_text,
    extract,
    match_three_operands,
    match_two_operands,
    normalize_glyphs,
    passthrough,
    rebuild_from_runs,
    scan_prefix,
    strip_trailers,
)


@pytest.fixture
def extractor():
    return ExpressionExtractor()


# ----------------------------------------------------------
# NORMALIZATION STAGES
# ----------------------------------------------------------

def test_clean_text_removes_all_whitespace() -> None:
    assert clean_text("  0 x 8 \n+ 6 =\t? ") == "0x8+6=?"
    assert clean_text("") == ""


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0x8+6=?", "0x8+6"),
        ("4+5?", "4+5"),
        ("4+5=", "4+5"),
        ("4+5=7", "4+5"),
        ("4+5", "4+5"),
    ],
)
def test_strip_trailers(text: str, expected: str) -> None:
    assert strip_trailers(text) == expected


def test_normalize_glyphs_maps_x_and_drops_noise() -> None:
    assert normalize_glyphs("4X5") == "4*5"
    assert normalize_glyphs("a1b+2!") == "1+2"
    assert normalize_glyphs("8/2-1") == "8/2-1"


# ----------------------------------------------------------
# CANDIDATE STRATEGIES
# ----------------------------------------------------------

def test_match_three_operands() -> None:
    assert match_three_operands("12+3*4") == "12+3*4"
    assert match_three_operands("*1+2-3") == "1+2-3"
    assert match_three_operands("1+2") is None


def test_match_two_operands() -> None:
    assert match_two_operands("+12*3-") == "12*3"
    assert match_two_operands("12") is None


def test_scan_prefix() -> None:
    assert scan_prefix("1++2") == "1++2"
    assert scan_prefix("12+3456") == "12+3"
    assert scan_prefix("*12") is None
    assert scan_prefix("1+") is None


def test_scan_prefix_respects_max_length() -> None:
    assert scan_prefix("1234++5", max_length=5) is None
    assert scan_prefix("1234++5", max_length=8) == "1234++5"


def test_rebuild_from_runs() -> None:
    assert rebuild_from_runs("1+2-3*4") == "1+2-3"
    assert rebuild_from_runs("1+2") == "1+2"
    assert rebuild_from_runs("+1") is None
    assert rebuild_from_runs("12") is None


def test_passthrough_returns_input() -> None:
    assert passthrough("*12") == "*12"


# ----------------------------------------------------------
# END-TO-END EXTRACTION
# ----------------------------------------------------------

def test_trailer_and_glyph_example() -> None:
    assert extract("0 x 8 + 6 = ?") == "0*8+6"


def test_x_glyph_is_multiplication() -> None:
    assert extract("4x5") == "4*5"


def test_surrounding_text_is_ignored(extractor) -> None:
    assert extractor.extract("Captcha: 12 + 7 = ?") == "12+7"


def test_long_residue_is_clamped(extractor) -> None:
    # Lossy: the operator falls past the clamp
    assert extractor.extract("123456789+1") == "123456"


def test_too_short_is_rejected(extractor) -> None:
    with pytest.raises(ExtractionError):
        extractor.extract("12")
    with pytest.raises(ExtractionError):
        extractor.extract("")
    with pytest.raises(ExtractionError):
        extractor.extract(" = ? ")


def test_known_noise_is_corrected(extractor) -> None:
    assert extractor.extract("9+0-75") == "9+0-7"
    assert extractor.extract("0 x 8 + 67") == "0*8+6"


def test_custom_correction_table() -> None:
    extractor = ExpressionExtractor(corrections={"1+2+33": "1+2+3"})
    assert extractor.extract("1+2+33") == "1+2+3"
    # defaults are replaced, not merged
    assert extractor.extract("9+0-75") == "9+0-75"


def test_prefix_scan_fallback(extractor) -> None:
    assert extractor.extract("1++2") == "1++2"


def test_passthrough_fallback(extractor) -> None:
    assert extractor.extract("*12") == "*12"


def test_shorten_long_expression(extractor) -> None:
    assert extractor.shorten("1+2+3+4+5+6") == "1+2+3"
    assert extractor.shorten("12345678901") is None


def test_over_long_expression_is_shortened() -> None:
    extractor = ExpressionExtractor(
        max_processed_length=20,
        strategies=[("passthrough", passthrough)],
    )
    assert extractor.extract("1+2+3+4+5+6") == "1+2+3"


def test_over_long_expression_kept_without_shorter_match() -> None:
    extractor = ExpressionExtractor(
        max_processed_length=20,
        strategies=[("passthrough", passthrough)],
    )
    assert extractor.extract("+++++++++++") == "+++++++++++"


def test_extraction_is_deterministic(extractor) -> None:
    raw = " 3 x 4 - 2 = ? "
    assert extractor.extract(raw) == extractor.extract(raw) == "3*4-2"
