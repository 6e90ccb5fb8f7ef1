"""Pytest configuration for tests."""
from __future__ import annotations

import base64
import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add the project root to the Python path
# This allows imports like "from services.captcha..." to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture
def png_b64() -> str:
    """Small white PNG, base64 encoded, standing in for a captcha image."""
    buffer = io.BytesIO()
    Image.new("RGB", (120, 40), "white").save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")
