"""Configuration management for the captcha reader service."""
from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _get_base_dir() -> Path:
    """Project root (the directory holding core/, services/, utils/)."""
    return Path(__file__).resolve().parents[1]


# Load .env from project root; real environment variables take precedence
_env_path = _get_base_dir() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _find_tesseract_path() -> str | None:
    """Locate the Tesseract binary from TESSERACT_CMD or PATH."""
    if env_path := os.getenv("TESSERACT_CMD"):
        if Path(env_path).exists():
            return env_path
    return shutil.which("tesseract")


def _noise_corrections_path() -> Path | None:
    raw = os.getenv("CAPTCHA_NOISE_CORRECTIONS", "").strip()
    return Path(raw) if raw else None


@dataclass
class Settings:
    """Application settings."""

    base_dir: Path = _get_base_dir()
    log_file: Path = base_dir / "logs" / "captcha_reader.log"
    host: str = os.getenv("CAPTCHA_HOST", "0.0.0.0")
    port: int = int(os.getenv("CAPTCHA_PORT", "3000"))
    log_level: str = os.getenv("CAPTCHA_LOG_LEVEL", "INFO")

    # OCR
    tesseract_cmd: str | None = _find_tesseract_path()
    ocr_language: str = os.getenv("CAPTCHA_OCR_LANGUAGE", "eng")
    ocr_char_whitelist: str = "0123456789+-*/x=?"
    ocr_psm: int = 7  # single text line
    ocr_oem: int = 1  # LSTM engine
    preprocess_images: bool = _env_bool("CAPTCHA_PREPROCESS", "true")

    # API
    max_image_bytes: int = int(os.getenv("CAPTCHA_MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
    enable_test_mode: bool = _env_bool("CAPTCHA_TEST_MODE", "true")

    # Expression extraction / evaluation heuristics
    noise_corrections_path: Path | None = _noise_corrections_path()
    max_processed_length: int = int(os.getenv("CAPTCHA_MAX_PROCESSED_LENGTH", "6"))
    max_expression_length: int = int(os.getenv("CAPTCHA_MAX_EXPRESSION_LENGTH", "10"))
    segment_step_cap: int = int(os.getenv("CAPTCHA_SEGMENT_STEP_CAP", "3"))
    combine_step_cap: int = int(os.getenv("CAPTCHA_COMBINE_STEP_CAP", "4"))


settings = Settings()
