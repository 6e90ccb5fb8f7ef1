"""Image helper utilities."""
from __future__ import annotations

import base64
import binascii
import io
import re

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from core.logger import logger
from services.captcha.errors import ImageDecodeError

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def decode_base64_image(data: str) -> bytes:
    """Decode a base64 image string, with or without a data URL prefix."""
    payload = DATA_URL_PREFIX.sub("", (data or "").strip())
    try:
        content = base64.b64decode(payload)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f"Failed to decode base64 image: {exc}") from exc

    if not content:
        raise ImageDecodeError("Failed to decode base64 image: empty payload")
    logger.debug("Base64 decoded successfully, buffer length: %d", len(content))
    return content


def load_image(content: bytes) -> Image.Image:
    """Open image bytes with PIL."""
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError(f"Failed to decode base64 image: {exc}") from exc
    return image


def preprocess_image(image: Image.Image) -> Image.Image:
    """Grayscale, upscale small captchas and binarize to help Tesseract."""
    gray = np.array(image.convert("L"))

    # Captchas are often tiny; Tesseract wants ~30px glyphs
    height, width = gray.shape[:2]
    if height < 60:
        scale = 60 / height
        gray = cv2.resize(
            gray, (int(width * scale), int(height * scale)), interpolation=cv2.INTER_CUBIC
        )

    blurred = cv2.GaussianBlur(gray, (3, 3), 0)
    _, binary = cv2.threshold(blurred, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)

    # Tesseract expects dark text on a light background
    if np.mean(binary) < 127:
        binary = cv2.bitwise_not(binary)

    logger.debug("Preprocessed image: %dx%d -> %dx%d", width, height, binary.shape[1], binary.shape[0])
    return Image.fromarray(binary)
